import io
import json
import tarfile
from unittest.mock import AsyncMock

import pytest

from image_relay.core.config import Settings

REGISTRY = "registry.local:5001"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        UPLOAD_DIR=tmp_path / "storage" / "docker-images",
        LOCAL_REGISTRY_URL=REGISTRY,
        DOCKER_DEFAULT_TIMEOUT_S=2.0,
    )


def make_docker_tar(path, repo_tags=("myapp:1.2.0",)):
    """Write a small archive laid out like `docker save` output."""
    manifest = json.dumps([{"Config": "config.json", "RepoTags": list(repo_tags), "Layers": []}]).encode()
    with tarfile.open(path, "w") as tar:
        for name, data in (("manifest.json", manifest), ("config.json", b"{}")):
            info = tarfile.TarInfo(name)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return path


@pytest.fixture
def docker_tar(tmp_path):
    return make_docker_tar(tmp_path / "myapp.tar")


@pytest.fixture
def docker_runtime():
    runtime = AsyncMock()
    runtime.version = AsyncMock(return_value="24.0.7")
    runtime.load_image = AsyncMock(return_value="Loaded image: myapp:1.2.0")
    runtime.image_tags = AsyncMock(return_value=[])
    runtime.list_image_references = AsyncMock(return_value=[])
    runtime.tag = AsyncMock(return_value=None)
    runtime.push = AsyncMock(return_value="pushed")
    runtime.remove_image = AsyncMock(return_value=None)
    return runtime


@pytest.fixture
def registry():
    client = AsyncMock()
    client.url = REGISTRY
    client.ping = AsyncMock(return_value=True)
    return client
