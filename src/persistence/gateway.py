"""Blueprint storage -- the gateway protocol and a JSON-file implementation."""
from __future__ import annotations

import logging
import re
import shutil
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from src.shared.constants import REVISIONS_DIR
from src.shared.errors import PersistenceError
from src.shared.models.blueprint import BlueprintDocument
from src.shared.utils import atomic_write_json, ensure_dir, load_json, now_utc

logger = logging.getLogger(__name__)

_BLUEPRINT_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


class BlueprintGateway(Protocol):
    """Storage seam used by the flow and the autosaver.

    ``save`` reports failure through its return value; it must not raise.
    """

    def save(self, blueprint_id: str, doc: BlueprintDocument) -> bool:
        ...

    def load(self, blueprint_id: str) -> BlueprintDocument | None:
        ...


class JsonFileGateway:
    """Stores each blueprint as ``<base_dir>/<id>.json``.

    Before a blueprint is overwritten the previous file is copied to
    ``<base_dir>/revisions/<id>/<timestamp>.json``, so edits supersede
    earlier versions instead of destroying them.

    Args:
        base_dir: Directory holding blueprint files.
        keep_revisions: Copy the previous version aside on every save.
    """

    def __init__(self, base_dir: str | Path, keep_revisions: bool = True) -> None:
        self.base_dir = Path(base_dir)
        self.keep_revisions = keep_revisions

    def _path_for(self, blueprint_id: str) -> Path:
        if not _BLUEPRINT_ID_RE.match(blueprint_id):
            raise PersistenceError(
                f"Invalid blueprint id: {blueprint_id!r}", blueprint_id=blueprint_id
            )
        return self.base_dir / f"{blueprint_id}.json"

    def _revision_dir(self, blueprint_id: str) -> Path:
        return self.base_dir / REVISIONS_DIR / blueprint_id

    # ------------------------------------------------------------------
    # Gateway protocol
    # ------------------------------------------------------------------

    def save(self, blueprint_id: str, doc: BlueprintDocument) -> bool:
        """Write *doc*; returns False (and logs) on any failure."""
        try:
            path = self._path_for(blueprint_id)
            if self.keep_revisions and path.exists():
                revision_dir = ensure_dir(self._revision_dir(blueprint_id))
                stamp = now_utc().strftime("%Y%m%dT%H%M%S%fZ")
                shutil.copy2(path, revision_dir / f"{stamp}.json")
            atomic_write_json(path, doc.to_export_dict())
        except PersistenceError as exc:
            logger.warning("Blueprint save rejected: %s", exc.detail)
            return False
        except (OSError, TypeError, ValueError) as exc:
            logger.warning("Failed to save blueprint %s (non-blocking): %s", blueprint_id, exc)
            return False
        logger.debug("Saved blueprint %s to %s", blueprint_id, path)
        return True

    def load(self, blueprint_id: str) -> BlueprintDocument | None:
        """Read a blueprint; ``None`` when missing, unreadable or invalid."""
        try:
            path = self._path_for(blueprint_id)
        except PersistenceError as exc:
            logger.warning("Blueprint load rejected: %s", exc.detail)
            return None
        data = load_json(path)
        if data is None:
            return None
        try:
            return BlueprintDocument.from_export_dict(data)
        except ValidationError as exc:
            logger.warning("Stored blueprint %s failed validation: %s", blueprint_id, exc)
            return None

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    def exists(self, blueprint_id: str) -> bool:
        try:
            return self._path_for(blueprint_id).is_file()
        except PersistenceError:
            return False

    def list_ids(self) -> list[str]:
        if not self.base_dir.is_dir():
            return []
        return sorted(p.stem for p in self.base_dir.glob("*.json"))

    def list_revisions(self, blueprint_id: str) -> list[Path]:
        """Superseded versions of a blueprint, oldest first."""
        revision_dir = self._revision_dir(blueprint_id)
        if not revision_dir.is_dir():
            return []
        return sorted(revision_dir.glob("*.json"))
