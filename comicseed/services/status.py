import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class SeedStatusWriter:
    """
    Persists seed progress as a small JSON document so another process can poll it.
    Shape: {"step": ..., "updatedAt": ..., <entity>: {EntityStats}, ...}
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._state: dict = {}

    def write(self, step: str, **detail) -> None:
        self._state.update(detail)
        payload = {
            "step": step,
            "updatedAt": datetime.now(timezone.utc).isoformat(),
            **self._state,
        }

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            # Write to a sibling temp file and swap it in so readers never see half a document
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".seed-status-", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, default=str)
            os.replace(tmp_name, self.path)
        except OSError as e:
            logger.warning(f"Failed writing seed status to {self.path}: {e}")

    def read(self) -> Optional[dict]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Could not read seed status {self.path}: {e}")
            return None
