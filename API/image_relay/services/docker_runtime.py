import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, List, TypeVar

import docker
from docker.errors import DockerException, NotFound

from image_relay.core.config import Settings
from image_relay.core.errors import EngineTimeoutError, EngineUnavailableError
from image_relay.domain.image import LocalImage
from image_relay.domain.ports import DockerRuntime

logger = logging.getLogger(__name__)

T = TypeVar("T")

NONE_REFERENCE = "<none>:<none>"


def _stream_text(chunks) -> str:
    """
    Flatten a decoded docker progress stream into text.
    Raises RuntimeError on the first error chunk.
    """
    lines = []
    for chunk in chunks:
        if "error" in chunk:
            detail = chunk.get("errorDetail", {}).get("message") or chunk["error"]
            raise RuntimeError(detail.strip())
        if "stream" in chunk:
            lines.append(chunk["stream"].rstrip("\n"))
        elif "status" in chunk:
            status = chunk["status"]
            if chunk.get("id"):
                status = f"{chunk['id']}: {status}"
            lines.append(status)
    return "\n".join(line for line in lines if line)


def _human_size(num_bytes: int) -> str:
    size = float(num_bytes)
    for unit in ("B", "kB", "MB", "GB"):
        if size < 1000:
            return f"{size:.3g}{unit}"
        size /= 1000
    return f"{size:.3g}TB"


def _split_reference(reference: str) -> tuple[str, str | None]:
    """Split `repo[:tag]` without mistaking a registry port for a tag."""
    name, _, tag = reference.rpartition(":")
    if not name or "/" in tag:
        return reference, None
    return name, tag


class DockerSDKRuntime(DockerRuntime):
    def __init__(self, settings: Settings | None = None):
        self.settings = settings or Settings()
        self._client: docker.DockerClient | None = None

    @property
    def docker_client(self) -> docker.DockerClient:
        if self._client is None:
            # HTTP timeout wide enough for the longest operation, asyncio enforces the real ones
            http_timeout = int(max(
                self.settings.DOCKER_LOAD_TIMEOUT_S,
                self.settings.DOCKER_PUSH_TIMEOUT_S,
                self.settings.DOCKER_PULL_TIMEOUT_S,
            ))
            try:
                self._client = docker.from_env(timeout=http_timeout)
            except DockerException as e:
                raise EngineUnavailableError(
                    f"Docker daemon is not accessible. Ensure Docker is running and accessible from this container. ({e})"
                )
        return self._client

    async def _call(self, operation: str, timeout: float, fn: Callable[[], T]) -> T:
        try:
            return await asyncio.wait_for(asyncio.to_thread(fn), timeout)
        except asyncio.TimeoutError:
            raise EngineTimeoutError(f"docker {operation} timed out after {timeout:.0f}s")

    # -------------------------------
    # Daemon
    # -------------------------------
    async def version(self) -> str:
        try:
            info = await self._call(
                "version",
                self.settings.DOCKER_DEFAULT_TIMEOUT_S,
                lambda: self.docker_client.version(),
            )
        except EngineUnavailableError:
            raise
        except Exception as e:
            raise EngineUnavailableError(
                f"Docker daemon is not accessible. Ensure Docker is running and accessible from this container. ({e})"
            )
        return info.get("Version", "unknown")

    # -------------------------------
    # Image lifecycle
    # -------------------------------
    async def load_image(self, path: str) -> str:
        """Load a .tar archive and return the daemon's textual output."""
        def _load() -> str:
            with open(path, "rb") as f:
                return _stream_text(self.docker_client.api.load_image(f))

        output = await self._call("load", self.settings.DOCKER_LOAD_TIMEOUT_S, _load)
        logger.debug(f"docker load output: {output}")
        return output

    async def image_tags(self, image_id: str) -> List[str]:
        image = await self._call(
            "inspect",
            self.settings.DOCKER_DEFAULT_TIMEOUT_S,
            lambda: self.docker_client.images.get(image_id),
        )
        return [t for t in image.tags if t and t != NONE_REFERENCE]

    async def list_image_references(self, limit: int) -> List[str]:
        def _list() -> List[str]:
            images = self.docker_client.images.list(filters={"dangling": False})
            images.sort(key=lambda img: img.attrs.get("Created", 0), reverse=True)
            references = [t for img in images for t in img.tags]
            return references[:limit]

        return await self._call("images", self.settings.DOCKER_DEFAULT_TIMEOUT_S, _list)

    async def list_images(self) -> List[LocalImage]:
        def _list() -> List[LocalImage]:
            result = []
            for img in self.docker_client.images.list():
                created = img.attrs.get("Created")
                if isinstance(created, (int, float)):
                    created = datetime.fromtimestamp(created, timezone.utc).isoformat()
                for name in img.tags or [NONE_REFERENCE]:
                    result.append(LocalImage(
                        name=name,
                        id=img.short_id.removeprefix("sha256:"),
                        size=_human_size(img.attrs.get("Size", 0)),
                        created=str(created or "unknown"),
                    ))
            return result

        return await self._call("images", self.settings.DOCKER_DEFAULT_TIMEOUT_S, _list)

    async def tag(self, source: str, target: str) -> None:
        repository, tag = _split_reference(target)

        def _tag() -> None:
            image = self.docker_client.images.get(source)
            if not image.tag(repository, tag=tag):
                raise RuntimeError(f"Docker refused to tag {source} as {target}")

        await self._call("tag", self.settings.DOCKER_DEFAULT_TIMEOUT_S, _tag)

    async def push(self, reference: str) -> str:
        repository, tag = _split_reference(reference)
        return await self._call(
            "push",
            self.settings.DOCKER_PUSH_TIMEOUT_S,
            lambda: _stream_text(
                self.docker_client.images.push(repository, tag=tag, stream=True, decode=True)
            ),
        )

    async def pull(self, reference: str) -> str:
        repository, tag = _split_reference(reference)
        return await self._call(
            "pull",
            self.settings.DOCKER_PULL_TIMEOUT_S,
            lambda: _stream_text(
                self.docker_client.api.pull(repository, tag=tag or "latest", stream=True, decode=True)
            ),
        )

    async def remove_image(self, reference: str) -> None:
        def _remove() -> None:
            try:
                self.docker_client.images.remove(reference)
            except NotFound:
                pass

        await self._call("rmi", self.settings.DOCKER_DEFAULT_TIMEOUT_S, _remove)
