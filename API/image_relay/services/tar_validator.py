import asyncio
import logging
import tarfile
from pathlib import Path

from image_relay.core.config import Settings
from image_relay.core.errors import ErrorKind
from image_relay.domain.image import ValidationResult

logger = logging.getLogger(__name__)


def _list_members(path: Path) -> list[str]:
    with tarfile.open(path, "r:*") as tar:
        return tar.getnames()


class TarValidator:
    """Cheap sanity checks on an uploaded archive before `docker load` sees it."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or Settings()

    async def validate(self, path: str | Path) -> ValidationResult:
        path = Path(path)
        logger.info(f"Validating Docker tar file: {path}")

        if not path.is_file():
            return ValidationResult.fail(ErrorKind.INVALID_FILE, "Uploaded file is not a valid file")

        size = path.stat().st_size
        if size == 0:
            return ValidationResult.fail(ErrorKind.EMPTY_FILE, "Tar file is empty")

        if size > self.settings.MAX_TAR_SIZE_BYTES:
            max_gb = self.settings.MAX_TAR_SIZE_BYTES / (1024 ** 3)
            return ValidationResult.fail(
                ErrorKind.FILE_TOO_LARGE, f"Tar file is too large (max {max_gb:g}GB)"
            )

        try:
            members = await asyncio.to_thread(_list_members, path)
        except (tarfile.TarError, OSError, EOFError) as e:
            logger.error(f"Tar validation failed: {e}")
            return ValidationResult.fail(ErrorKind.NOT_A_TAR, "File is not a valid tar archive")

        # Soft signal only: some image archives are laid out differently
        if not any(name.endswith(".json") for name in members):
            logger.warning(f"Tar file {path.name} may not be a Docker image tar (no manifest.json found)")

        logger.info("Tar file validation passed")
        return ValidationResult.ok()
