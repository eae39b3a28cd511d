"""Local file storage for uploaded documents.

Files live under ``settings.UPLOAD_PATH``. Callers keep the returned path
on the document record; it is never handed back to API clients.
"""

from __future__ import annotations

import os
import uuid
from pathlib import Path

from medcontract.config import settings
from medcontract.integrations.base import BaseIntegration


class StorageClient(BaseIntegration):
    """Filesystem storage client rooted at the configured upload directory."""

    def __init__(self, root: str | Path | None = None) -> None:
        super().__init__("storage")
        self.root = Path(root or settings.UPLOAD_PATH).resolve()

    async def health_check(self) -> bool:
        self.ensure_root()
        writable = os.access(self.root, os.W_OK)
        self.logger.info("Storage root %s writable=%s", self.root, writable)
        return writable

    def ensure_root(self) -> Path:
        self.root.mkdir(parents=True, exist_ok=True)
        return self.root

    @staticmethod
    def generate_filename(prefix: str, original_name: str) -> str:
        """Collision-resistant storage name, unrelated to the user-supplied name."""
        ext = Path(original_name).suffix.lower()
        return f"{prefix}-{uuid.uuid4().hex}{ext}"

    async def save(self, content: bytes, filename: str) -> Path:
        target = self.ensure_root() / filename
        target.write_bytes(content)
        self.logger.info("Stored %s (%d bytes)", filename, len(content))
        return target

    async def exists(self, path: str | Path) -> bool:
        return Path(path).is_file()

    async def delete(self, path: str | Path) -> bool:
        """Remove a stored file. Missing files are not an error."""
        target = Path(path)
        try:
            target.unlink()
        except FileNotFoundError:
            self.logger.info("File already absent | path=%s", target.name)
            return False
        self.logger.info("File deleted | path=%s", target.name)
        return True
