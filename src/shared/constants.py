"""Shared constants used across the blueprint packages."""
from __future__ import annotations

# Application version
VERSION: str = "1.0.0"

# Exported document schema version
SCHEMA_VERSION: int = 3

# Service name stamped on structured log records
SERVICE_NAME: str = "blueprint-flow"

# Persistence defaults
DEFAULT_STORAGE_DIR: str = ".blueprints"
REVISIONS_DIR: str = "revisions"
DEFAULT_AUTOSAVE_DEBOUNCE_MS: int = 500

# Event channel
MAX_LISTENERS: int = 100

# Extraction
MILESTONE_COUNT: int = 3
RUBRIC_TOTAL_WEIGHT: int = 100
