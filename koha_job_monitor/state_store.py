"""JSON file persistence for the alert snapshot."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from .errors import StateStoreError
from .models.alerts import AlertSnapshot

logger = logging.getLogger(__name__)


class JsonStateStore:
    """Alert snapshot stored as a small JSON object of 0/1 flags."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load(self) -> AlertSnapshot:
        """Return the persisted snapshot, or an empty one if it can't be read."""
        if not self.path.exists():
            logger.debug("No state file at %s, starting empty", self.path)
            return AlertSnapshot()
        try:
            data = json.loads(self.path.read_text())
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable state file %s: %s", self.path, e)
            return AlertSnapshot()
        if not isinstance(data, dict):
            logger.warning("Ignoring state file %s: not a JSON object", self.path)
            return AlertSnapshot()
        return AlertSnapshot.from_dict(data)

    def save(self, snapshot: AlertSnapshot) -> None:
        """Atomically replace the state file with the full snapshot."""
        payload = json.dumps(snapshot.to_dict())
        tmp_name: str | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", dir=str(self.path.parent)
            )
            with os.fdopen(fd, "w") as fh:
                fh.write(payload)
            os.replace(tmp_name, self.path)
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StateStoreError(
                f"Cannot write state file '{self.path}': {e}"
            ) from e
        logger.debug("Saved state %s to %s", payload, self.path)


__all__ = ["JsonStateStore"]
