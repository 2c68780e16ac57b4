from typing import Protocol, List

from image_relay.domain.image import LocalImage


class DockerRuntime(Protocol):
    # -------------------------------
    # Daemon
    # -------------------------------
    async def version(self) -> str:
        """Return the daemon version. Raises EngineUnavailableError if unreachable."""
        ...

    # -------------------------------
    # Images
    # -------------------------------
    async def load_image(self, path: str) -> str:
        """Load a .tar archive into the engine. Returns the textual load output."""
        ...

    async def image_tags(self, image_id: str) -> List[str]:
        """Return the repo:tag references pointing at an image id."""
        ...

    async def list_image_references(self, limit: int) -> List[str]:
        """Most recent non-dangling repo:tag references, newest first."""
        ...

    async def list_images(self) -> List[LocalImage]:
        """All local images, one entry per reference."""
        ...

    async def tag(self, source: str, target: str) -> None:
        """Add the `target` reference to the image `source` points at."""
        ...

    async def push(self, reference: str) -> str:
        """Push a reference to its registry. Returns the push output."""
        ...

    async def pull(self, reference: str) -> str:
        """Pull a reference from its registry. Returns the pull output."""
        ...

    async def remove_image(self, reference: str) -> None:
        """Remove a local reference."""
        ...


class RegistryClient(Protocol):
    url: str

    async def ping(self) -> bool: ...

    async def catalog(self) -> List[str]: ...

    async def tags(self, repository: str) -> List[str]: ...
