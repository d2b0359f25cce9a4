# src/timed_dispatch/core/credentials.py

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def _atomic_write_json(path: Path, data: dict[str, Any]) -> None:
    tmp = path.with_suffix(".tmp")
    tmp.write_text(json.dumps(data, ensure_ascii=False), "utf-8")
    os.replace(tmp, path)
    try:
        os.chmod(path, 0o600)
    except OSError:
        # Best-effort: not critical on Windows or restricted FS.
        pass


class JsonCredentialStore:
    """
    Single-file credential persistence.

    The blob belongs to the protocol client; we never look inside.
    The file contains session secrets and must live under a gitignored directory.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> dict[str, Any] | None:
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text("utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Failed to read credentials from %s: %r", self.path, e)
            return None
        if not isinstance(data, dict):
            logger.warning("Ignoring credentials in %s: expected a JSON object", self.path)
            return None
        return data

    def save(self, credentials: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        _atomic_write_json(self.path, dict(credentials))
        logger.info("Credentials saved to %s", self.path)
