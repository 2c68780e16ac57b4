import asyncio
import logging
from collections import Counter
from contextlib import asynccontextmanager
from typing import Dict, Iterable

from image_relay.core.config import Settings
from image_relay.domain.image import DEFAULT_TAG, ImageReference, PushOutcome, PushReport, PushType
from image_relay.domain.ports import DockerRuntime, RegistryClient

logger = logging.getLogger(__name__)


class RegistryPusher:
    """Re-tags loaded images for the target registry and pushes a versioned and a `latest` tag."""

    def __init__(self, docker_runtime: DockerRuntime, registry: RegistryClient, settings: Settings | None = None):
        self.docker_runtime = docker_runtime
        self.registry = registry
        self.settings = settings or Settings()
        # Serialize tag/push/rmi of the same target reference across concurrent uploads.
        # A lock lives only while some task holds or waits on it.
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Counter = Counter()

    async def push(self, images: Iterable[str]) -> PushReport:
        images = list(images)
        registry_url = self.registry.url
        report = PushReport()
        logger.info(f"Pushing images to local registry {registry_url}: {images}")

        try:
            if not await self.registry.ping():
                report.warnings.append(
                    f"Local registry at {registry_url} may not be accessible. Proceeding with push attempts anyway."
                )
        except Exception as e:
            logger.warning(f"Could not verify registry connectivity: {e}")
            report.warnings.append(f"Could not verify registry connectivity: {e}")

        for name in images:
            ref = ImageReference.parse(name)
            logger.info(f"Processing repository: {ref.repository}, original tag: {ref.tag}")

            versioned = ref.target(registry_url)
            latest = ref.target(registry_url, DEFAULT_TAG)
            report.pushed_images.append(await self._push_variant(ref, versioned, ref.tag, "original", report))
            report.pushed_images.append(await self._push_variant(ref, latest, DEFAULT_TAG, "latest", report))

            for target in dict.fromkeys((versioned, latest)):
                await self._cleanup(target)

        logger.info(
            f"Push operation completed. Success: {report.success_count}, "
            f"Failed: {len(report.pushed_images) - report.success_count}"
        )
        return report

    @asynccontextmanager
    async def _target_lock(self, target: str):
        lock = self._locks.setdefault(target, asyncio.Lock())
        self._lock_users[target] += 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[target] -= 1
            if not self._lock_users[target]:
                del self._lock_users[target]
                del self._locks[target]

    async def _push_variant(
        self,
        ref: ImageReference,
        target: str,
        tag: str,
        kind: PushType,
        report: PushReport,
    ) -> PushOutcome:
        outcome = PushOutcome(
            original_name=ref.name,
            local_name=target,
            registry_url=self.registry.url,
            tag=tag,
            status="success",
            type=kind,
        )
        try:
            async with self._target_lock(target):
                logger.info(f"Tagging image {ref.name} as {target}")
                await self.docker_runtime.tag(ref.name, target)
                logger.info(f"Pushing {kind} version {target}")
                await self.docker_runtime.push(target)
            logger.info(f"Successfully pushed {target}")
        except Exception as e:
            logger.error(f"Failed to push image {ref.name} as {target}: {e}")
            report.errors.append(f"Failed to push {ref.name} as {target}: {e}")
            outcome.status = "failed"
            outcome.error = str(e)
        return outcome

    async def _cleanup(self, target: str) -> None:
        """Drop a local registry tag. Never fails the push."""
        try:
            async with self._target_lock(target):
                await self.docker_runtime.remove_image(target)
            logger.info(f"Cleaned up local tag: {target}")
        except Exception as e:
            logger.warning(f"Failed to cleanup local tag {target}: {e}")
