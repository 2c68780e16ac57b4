# tests/test_pipeline.py
import tarfile

import pytest
from unittest.mock import AsyncMock

from image_relay.core.context import build_context
from image_relay.core.errors import EngineUnavailableError, ErrorKind, TarValidationError
from image_relay.services.image_loader import NO_IMAGES_LOADED


def staged(settings, source):
    """Copy a tar into the upload directory the way UploadStore leaves it."""
    settings.UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
    path = settings.UPLOAD_DIR / f"staged_{source.name}"
    path.write_bytes(source.read_bytes())
    return path


@pytest.mark.asyncio
async def test_single_image_is_loaded_and_pushed_twice(settings, docker_tar, docker_runtime, registry):
    pipeline = build_context(settings, docker_runtime, registry).pipeline
    tar_path = staged(settings, docker_tar)

    result = await pipeline.run(tar_path)

    assert result.loaded_images == ["myapp:1.2.0"]
    assert [(p.local_name, p.status) for p in result.pushed_images] == [
        (f"{registry.url}/myapp:1.2.0", "success"),
        (f"{registry.url}/myapp:latest", "success"),
    ]
    assert result.errors == []
    assert result.warnings == []
    assert not tar_path.exists()


@pytest.mark.asyncio
async def test_nothing_loaded_skips_push_and_removes_file(settings, tmp_path, docker_runtime, registry):
    # valid tar, but not an image archive
    source = tmp_path / "notes.tar"
    with tarfile.open(source, "w") as tar:
        tar.add(__file__, arcname="notes.txt")
    docker_runtime.load_image = AsyncMock(return_value="")
    pipeline = build_context(settings, docker_runtime, registry).pipeline
    tar_path = staged(settings, source)

    result = await pipeline.run(tar_path)

    assert result.loaded_images == []
    assert result.pushed_images == []
    assert result.errors == [NO_IMAGES_LOADED]
    assert "No images were loaded from the tar file" in result.warnings
    docker_runtime.push.assert_not_awaited()
    registry.ping.assert_not_awaited()
    assert not tar_path.exists()


@pytest.mark.asyncio
async def test_partial_push_failure_is_embedded_in_result(settings, docker_tar, docker_runtime, registry):
    async def fake_push(reference):
        if reference.endswith(":latest"):
            raise RuntimeError("blob upload unknown")
        return "pushed"

    docker_runtime.push = AsyncMock(side_effect=fake_push)
    pipeline = build_context(settings, docker_runtime, registry).pipeline

    result = await pipeline.run(staged(settings, docker_tar))

    assert [p.status for p in result.pushed_images] == ["success", "failed"]
    assert len(result.errors) == 1


@pytest.mark.asyncio
async def test_engine_unavailable_fails_fast_and_removes_file(settings, docker_tar, docker_runtime, registry):
    docker_runtime.version = AsyncMock(side_effect=EngineUnavailableError())
    pipeline = build_context(settings, docker_runtime, registry).pipeline
    tar_path = staged(settings, docker_tar)

    with pytest.raises(EngineUnavailableError):
        await pipeline.run(tar_path)

    docker_runtime.load_image.assert_not_awaited()
    assert not tar_path.exists()


@pytest.mark.asyncio
async def test_invalid_tar_is_rejected_and_removed(settings, docker_runtime, registry):
    settings.UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
    tar_path = settings.UPLOAD_DIR / "bogus.tar"
    tar_path.write_text("not a tar archive")
    pipeline = build_context(settings, docker_runtime, registry).pipeline

    with pytest.raises(TarValidationError) as exc_info:
        await pipeline.run(tar_path)

    assert exc_info.value.kind == ErrorKind.NOT_A_TAR
    assert exc_info.value.details == "File is not a valid tar archive"
    docker_runtime.load_image.assert_not_awaited()
    assert not tar_path.exists()


@pytest.mark.asyncio
async def test_cleanup_failure_becomes_warning(settings, docker_tar, docker_runtime, registry):
    ctx = build_context(settings, docker_runtime, registry)
    ctx.uploads.discard = AsyncMock(side_effect=PermissionError("read-only file system"))

    result = await ctx.pipeline.run(staged(settings, docker_tar))

    assert result.warnings == ["Failed to cleanup tar file: read-only file system"]
