"""Environment configuration using pydantic-settings."""
from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings


class BlueprintSettings(BaseSettings):
    """Environment overrides applied on top of the YAML flow config."""
    log_level: str | None = Field(default=None, validation_alias="LOG_LEVEL")
    storage_dir: str | None = Field(
        default=None, validation_alias="BLUEPRINT_STORAGE_DIR"
    )
    generative_backend_url: str | None = Field(
        default=None, validation_alias="GENERATIVE_BACKEND_URL"
    )
    generative_api_key: str | None = Field(
        default=None, validation_alias="GENERATIVE_API_KEY"
    )

    model_config = {
        "populate_by_name": True,
        "extra": "ignore",
    }
