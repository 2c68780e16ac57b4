import logging
import re
from pathlib import Path
from typing import Awaitable, Callable, List

from image_relay.core.config import Settings
from image_relay.domain.image import LoadResult
from image_relay.domain.ports import DockerRuntime

logger = logging.getLogger(__name__)

NO_IMAGES_LOADED = "No Docker images were successfully loaded from the tar file"
RECENT_IMAGES_WARNING = "Could not parse loaded images from docker load output, using recently available images"

_LOADED_NAME_RE = re.compile(r"^Loaded image: (.+)$", re.MULTILINE)
_LOADED_ID_RE = re.compile(r"^Loaded image ID: (.+)$", re.MULTILINE)

Strategy = Callable[[str, List[str]], Awaitable[List[str]]]


# -------------------------------
# Pure parsers
# -------------------------------
def parse_loaded_image_names(output: str) -> List[str]:
    """`Loaded image: name:tag` lines of a docker load."""
    return [m.strip() for m in _LOADED_NAME_RE.findall(output) if m.strip()]


def parse_loaded_image_ids(output: str) -> List[str]:
    """`Loaded image ID: sha256:...` lines, emitted for untagged images."""
    return [m.strip() for m in _LOADED_ID_RE.findall(output) if m.strip()]


def select_recent_images(references: List[str], limit: int) -> List[str]:
    usable = [
        ref.strip() for ref in references
        if ref.strip() and "<none>" not in ref
    ]
    return usable[:limit]


class ImageLoader:
    """
    Loads a tarball into the engine and works out which image references it produced.

    Recovery strategies are tried in order and the first one that returns at least
    one reference wins. Warnings produced along the way are kept.
    """

    def __init__(self, docker_runtime: DockerRuntime, settings: Settings | None = None):
        self.docker_runtime = docker_runtime
        self.settings = settings or Settings()
        self.strategies: List[Strategy] = [
            self._from_loaded_names,
            self._from_loaded_ids,
            self._from_recent_images,
        ]

    async def load(self, tar_path: str | Path) -> LoadResult:
        logger.info(f"Loading Docker images from tar file: {tar_path}")

        if not Path(tar_path).exists():
            return LoadResult(errors=("Failed to load images from tar: Tar file not found",))

        try:
            output = await self.docker_runtime.load_image(str(tar_path))
        except Exception as e:
            logger.error(f"Error loading Docker images from tar: {e}")
            return LoadResult(errors=(f"Failed to load images from tar: {e}",))

        warnings: List[str] = []
        images: List[str] = []
        for strategy in self.strategies:
            images = await strategy(output, warnings)
            if images:
                break
            logger.info(f"{strategy.__name__} recovered no image names, trying next strategy")

        errors: List[str] = []
        if images:
            logger.info(f"Successfully loaded {len(images)} images: {images}")
        else:
            errors.append(NO_IMAGES_LOADED)

        return LoadResult(images=tuple(images), errors=tuple(errors), warnings=tuple(warnings))

    # -------------------------------
    # Strategies
    # -------------------------------
    async def _from_loaded_names(self, output: str, warnings: List[str]) -> List[str]:
        return parse_loaded_image_names(output)

    async def _from_loaded_ids(self, output: str, warnings: List[str]) -> List[str]:
        images: List[str] = []
        for image_id in parse_loaded_image_ids(output):
            try:
                tags = await self.docker_runtime.image_tags(image_id)
            except Exception as e:
                logger.warning(f"Failed to inspect image ID {image_id}: {e}")
                tags = []
            if tags:
                images.extend(tags)
            else:
                warnings.append(f"Loaded image with ID {image_id} but couldn't determine name")
        return images

    async def _from_recent_images(self, output: str, warnings: List[str]) -> List[str]:
        try:
            references = await self.docker_runtime.list_image_references(self.settings.RECENT_IMAGE_SCAN)
        except Exception as e:
            logger.warning(f"Failed to get recent images: {e}")
            warnings.append("Could not determine loaded images")
            return []

        recent = select_recent_images(references, self.settings.RECENT_IMAGE_LIMIT)
        if recent:
            warnings.append(RECENT_IMAGES_WARNING)
        return recent
