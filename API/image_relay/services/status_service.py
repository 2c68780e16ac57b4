import logging
import os
from dataclasses import asdict
from typing import Any, Dict

from image_relay.core.config import Settings
from image_relay.core.errors import EngineUnavailableError
from image_relay.domain.ports import DockerRuntime
from image_relay.services.registry_client import HTTPRegistryClient

logger = logging.getLogger(__name__)


class StatusService:
    """Read-only views over the local engine and the target registry."""

    def __init__(self, docker_runtime: DockerRuntime, registry: HTTPRegistryClient, settings: Settings | None = None):
        self.docker_runtime = docker_runtime
        self.registry = registry
        self.settings = settings or Settings()

    async def _daemon(self) -> Dict[str, Any]:
        daemon: Dict[str, Any] = {"accessible": False, "version": None}
        try:
            daemon["version"] = await self.docker_runtime.version()
            daemon["accessible"] = True
        except EngineUnavailableError as e:
            logger.warning(f"Docker daemon not accessible: {e.details}")
            daemon["error"] = e.details
        return daemon

    async def docker_images_status(self) -> Dict[str, Any]:
        status: Dict[str, Any] = {
            "localImages": [],
            "registryInfo": {"url": self.registry.url, "accessible": False},
            "dockerDaemon": await self._daemon(),
        }
        status["dockerDaemon"].pop("error", None)

        if status["dockerDaemon"]["accessible"]:
            try:
                status["localImages"] = [asdict(img) for img in await self.docker_runtime.list_images()]
            except Exception as e:
                logger.warning(f"Failed to get Docker images: {e}")

        status["registryInfo"]["accessible"] = await self.registry.ping()
        return status

    async def setup_check(self) -> Dict[str, Any]:
        upload_dir = self.settings.UPLOAD_DIR
        daemon = await self._daemon()
        results: Dict[str, Any] = {
            "dockerDaemon": daemon,
            "localRegistry": {
                "url": self.registry.url,
                "accessible": await self.registry.ping(),
            },
            "uploadDirectory": {
                "path": str(upload_dir),
                "exists": upload_dir.is_dir(),
                "writable": upload_dir.is_dir() and os.access(upload_dir, os.W_OK),
            },
        }
        results["ready"] = (
            daemon["accessible"]
            and results["uploadDirectory"]["exists"]
            and results["uploadDirectory"]["writable"]
        )
        return results

    async def pull_from_registry(self, image_name: str) -> Dict[str, Any]:
        full_name = image_name
        if not image_name.startswith(f"{self.registry.url}/"):
            full_name = f"{self.registry.url}/{image_name}"

        logger.info(f"Pulling image from registry: {full_name}")
        result: Dict[str, Any] = {"imageName": full_name, "success": False, "error": None, "output": None}
        try:
            result["output"] = await self.docker_runtime.pull(full_name)
            result["success"] = True
            logger.info(f"Successfully pulled image: {full_name}")
        except Exception as e:
            logger.error(f"Failed to pull image {full_name}: {e}")
            result["error"] = str(e)
        return result
