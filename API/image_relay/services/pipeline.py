import logging
from pathlib import Path

from image_relay.core.errors import TarValidationError
from image_relay.domain.image import PipelineResult
from image_relay.domain.ports import DockerRuntime
from image_relay.services.image_loader import ImageLoader
from image_relay.services.registry_pusher import RegistryPusher
from image_relay.services.tar_validator import TarValidator
from image_relay.services.upload_store import UploadStore

logger = logging.getLogger(__name__)


class PipelineService:
    """Validate -> load -> push for one staged tarball, which is always removed afterwards."""

    def __init__(
        self,
        docker_runtime: DockerRuntime,
        validator: TarValidator,
        loader: ImageLoader,
        pusher: RegistryPusher,
        uploads: UploadStore,
    ):
        self.docker_runtime = docker_runtime
        self.validator = validator
        self.loader = loader
        self.pusher = pusher
        self.uploads = uploads

    async def run(self, tar_path: str | Path) -> PipelineResult:
        """
        Process a staged tarball.

        Raises EngineUnavailableError when the daemon cannot be reached and
        TarValidationError when the file is rejected. Load and push failures are
        reported inside the returned PipelineResult.
        """
        tar_path = Path(tar_path)
        result: PipelineResult | None = None
        logger.info(f"Processing Docker tar file: {tar_path.name}")
        try:
            docker_version = await self.docker_runtime.version()
            logger.info(f"Docker daemon reachable (version {docker_version})")

            validation = await self.validator.validate(tar_path)
            if not validation.is_valid:
                raise TarValidationError(validation.error, validation.kind)

            result = PipelineResult()
            load = await self.loader.load(tar_path)
            result.add_load(load)

            if load.images:
                result.add_push(await self.pusher.push(load.images))
            else:
                result.warnings.append("No images were loaded from the tar file")

            logger.info(
                f"Docker tar processing completed: {len(result.loaded_images)} loaded, "
                f"{sum(1 for p in result.pushed_images if p.status == 'success')} pushed, "
                f"{len(result.errors)} errors"
            )
            return result
        finally:
            try:
                await self.uploads.discard(tar_path)
            except OSError as e:
                logger.warning(f"Failed to cleanup tar file: {e}")
                if result is not None:
                    result.warnings.append(f"Failed to cleanup tar file: {e}")
