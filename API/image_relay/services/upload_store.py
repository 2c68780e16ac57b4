import logging
from pathlib import Path
from uuid import uuid4

import aiofiles
import aiofiles.os

from image_relay.core.config import Settings
from image_relay.core.errors import ErrorKind, UploadRejectedError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


class UploadStore:
    """Stages uploaded tarballs on disk for the duration of one pipeline run."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or Settings()

    async def save(self, file) -> Path:
        if file is None or not file.filename:
            raise UploadRejectedError("No tar file uploaded")

        filename = Path(file.filename).name
        if not filename.lower().endswith(".tar"):
            raise UploadRejectedError("Only .tar files are allowed for Docker image uploads")

        await aiofiles.os.makedirs(self.settings.UPLOAD_DIR, exist_ok=True)
        path = self.settings.UPLOAD_DIR / f"{uuid4()}_{filename}"
        written = 0
        try:
            async with aiofiles.open(path, "wb") as out_file:
                while chunk := await file.read(CHUNK_SIZE):
                    written += len(chunk)
                    if written > self.settings.MAX_TAR_SIZE_BYTES:
                        max_gb = self.settings.MAX_TAR_SIZE_BYTES / (1024 ** 3)
                        raise UploadRejectedError(
                            f"Tar file is too large (max {max_gb:g}GB)", ErrorKind.FILE_TOO_LARGE
                        )
                    await out_file.write(chunk)
        except BaseException:
            await self.discard(path)
            raise

        logger.info(f"Docker tar file uploaded: {path.name} ({written} bytes)")
        return path

    async def discard(self, path: str | Path) -> None:
        """Remove a staged file. Missing files are not an error."""
        path = Path(path)
        if await aiofiles.os.path.exists(path):
            await aiofiles.os.remove(path)
            logger.info(f"Cleaned up uploaded tar file {path.name}")
