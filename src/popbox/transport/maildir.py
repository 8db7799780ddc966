"""Maildir storage for drained messages."""

import hashlib
import os
import socket
import time
from pathlib import Path

import aiofiles
import aiofiles.os
import structlog

from popbox.exceptions import StorageError

logger = structlog.get_logger(__name__)


class MaildirWriter:
    """Write messages into a Maildir: tmp/ first, then rename into new/."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.tmp_dir = self.path / "tmp"
        self.new_dir = self.path / "new"
        self.cur_dir = self.path / "cur"

    async def ensure_directories(self) -> None:
        """Create the cur/new/tmp structure."""
        for dir_path in (self.cur_dir, self.new_dir, self.tmp_dir):
            await aiofiles.os.makedirs(dir_path, exist_ok=True)
        logger.info("maildir_directories_ensured", path=str(self.path))

    async def save(self, message: str) -> str:
        """Store one message and verify it was written completely.

        The file only appears in new/ once fully written, so a reader of
        the Maildir never sees a partial message.

        Returns the filename.
        Raises StorageError if writing or verification fails.
        """
        raw = message.encode("utf-8")
        filename = self._generate_filename()
        tmp_path = self.tmp_dir / filename
        dest_path = self.new_dir / filename

        try:
            async with aiofiles.open(tmp_path, "wb") as f:
                await f.write(raw)

            actual_size = tmp_path.stat().st_size
            if actual_size != len(raw):
                raise StorageError(
                    f"File size mismatch: expected {len(raw)}, got {actual_size}"
                )

            tmp_path.chmod(0o660)
            await aiofiles.os.rename(tmp_path, dest_path)
            logger.debug("maildir_message_saved", filename=filename, size=len(raw))
            return filename
        except (OSError, StorageError) as e:
            logger.error("maildir_save_failed", error=str(e))
            if tmp_path.exists():
                tmp_path.unlink(missing_ok=True)
            raise StorageError(f"Failed to save message: {e}") from e

    async def count_new(self) -> int:
        """Count messages waiting in new/."""
        if not await aiofiles.os.path.exists(self.new_dir):
            return 0
        return len(await aiofiles.os.listdir(self.new_dir))

    def _generate_filename(self) -> str:
        """Generate unique Maildir-compliant filename."""
        timestamp = int(time.time() * 1000000)
        hostname = socket.gethostname()[:16]
        random_part = hashlib.md5(
            f"{timestamp}{os.getpid()}{os.urandom(8).hex()}".encode()
        ).hexdigest()[:16]
        return f"{timestamp}.{random_part}.{hostname}"
