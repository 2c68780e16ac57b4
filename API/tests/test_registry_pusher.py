# tests/test_registry_pusher.py
import asyncio

import pytest
from unittest.mock import AsyncMock, call

from image_relay.services.registry_pusher import RegistryPusher


@pytest.mark.asyncio
async def test_push_tags_and_pushes_version_and_latest(settings, docker_runtime, registry):
    pusher = RegistryPusher(docker_runtime, registry, settings)

    report = await pusher.push(["myapp:1.2.0"])

    assert [(p.local_name, p.type, p.tag, p.status) for p in report.pushed_images] == [
        (f"{registry.url}/myapp:1.2.0", "original", "1.2.0", "success"),
        (f"{registry.url}/myapp:latest", "latest", "latest", "success"),
    ]
    assert all(p.original_name == "myapp:1.2.0" and p.registry_url == registry.url for p in report.pushed_images)
    assert report.errors == []
    assert report.warnings == []
    assert report.success_count == 2

    docker_runtime.tag.assert_has_awaits([
        call("myapp:1.2.0", f"{registry.url}/myapp:1.2.0"),
        call("myapp:1.2.0", f"{registry.url}/myapp:latest"),
    ])
    docker_runtime.push.assert_has_awaits([
        call(f"{registry.url}/myapp:1.2.0"),
        call(f"{registry.url}/myapp:latest"),
    ])
    docker_runtime.remove_image.assert_has_awaits([
        call(f"{registry.url}/myapp:1.2.0"),
        call(f"{registry.url}/myapp:latest"),
    ])


@pytest.mark.asyncio
async def test_untagged_source_defaults_to_latest(settings, docker_runtime, registry):
    pusher = RegistryPusher(docker_runtime, registry, settings)

    report = await pusher.push(["acme/tool"])

    assert [p.local_name for p in report.pushed_images] == [f"{registry.url}/tool:latest"] * 2
    # Same target twice is only cleaned up once
    docker_runtime.remove_image.assert_awaited_once_with(f"{registry.url}/tool:latest")


@pytest.mark.asyncio
async def test_latest_failure_does_not_affect_versioned_push(settings, docker_runtime, registry):
    async def fake_push(reference):
        if reference.endswith(":latest"):
            raise RuntimeError("denied: requested access to the resource is denied")
        return "pushed"

    docker_runtime.push = AsyncMock(side_effect=fake_push)
    pusher = RegistryPusher(docker_runtime, registry, settings)

    report = await pusher.push(["myapp:1.2.0"])

    original, latest = report.pushed_images
    assert (original.type, original.status, original.error) == ("original", "success", None)
    assert (latest.type, latest.status) == ("latest", "failed")
    assert "denied" in latest.error
    assert report.errors == [
        f"Failed to push myapp:1.2.0 as {registry.url}/myapp:latest: denied: requested access to the resource is denied"
    ]
    assert report.success_count == 1


@pytest.mark.asyncio
async def test_failed_image_still_records_two_outcomes_and_siblings_continue(settings, docker_runtime, registry):
    async def fake_tag(source, target):
        if source == "broken:1":
            raise RuntimeError("No such image: broken:1")

    docker_runtime.tag = AsyncMock(side_effect=fake_tag)
    pusher = RegistryPusher(docker_runtime, registry, settings)

    report = await pusher.push(["broken:1", "myapp:1.2.0"])

    assert len(report.pushed_images) == 4
    broken = [p for p in report.pushed_images if p.original_name == "broken:1"]
    assert [(p.type, p.status) for p in broken] == [("original", "failed"), ("latest", "failed")]
    assert all(p.error == "No such image: broken:1" for p in broken)
    assert [p.status for p in report.pushed_images if p.original_name == "myapp:1.2.0"] == ["success", "success"]
    assert len(report.errors) == 2
    assert report.success_count == 2


@pytest.mark.asyncio
async def test_unreachable_registry_is_advisory(settings, docker_runtime, registry):
    registry.ping = AsyncMock(return_value=False)
    pusher = RegistryPusher(docker_runtime, registry, settings)

    report = await pusher.push(["myapp:1.2.0"])

    assert report.warnings == [
        f"Local registry at {registry.url} may not be accessible. Proceeding with push attempts anyway."
    ]
    assert docker_runtime.push.await_count == 2
    assert report.success_count == 2


@pytest.mark.asyncio
async def test_cleanup_failure_is_not_surfaced(settings, docker_runtime, registry):
    docker_runtime.remove_image = AsyncMock(side_effect=RuntimeError("conflict: image is in use"))
    pusher = RegistryPusher(docker_runtime, registry, settings)

    report = await pusher.push(["myapp:1.2.0"])

    assert report.errors == []
    assert report.warnings == []
    assert report.success_count == 2


@pytest.mark.asyncio
async def test_pushing_same_image_twice_is_not_deduplicated(settings, docker_runtime, registry):
    pusher = RegistryPusher(docker_runtime, registry, settings)

    report = await pusher.push(["myapp:1.2.0", "myapp:1.2.0"])

    assert len(report.pushed_images) == 4
    assert report.success_count == 4
    assert docker_runtime.push.await_count == 4


@pytest.mark.asyncio
async def test_failing_registry_check_still_attempts_pushes(settings, docker_runtime, registry):
    registry.ping = AsyncMock(side_effect=ValueError("invalid literal for int() with base 10: 'notaport'"))
    pusher = RegistryPusher(docker_runtime, registry, settings)

    report = await pusher.push(["myapp:1.2.0"])

    assert report.warnings == [
        "Could not verify registry connectivity: invalid literal for int() with base 10: 'notaport'"
    ]
    assert docker_runtime.push.await_count == 2
    assert report.success_count == 2


@pytest.mark.asyncio
async def test_target_locks_are_released_after_push(settings, docker_runtime, registry):
    pusher = RegistryPusher(docker_runtime, registry, settings)

    await pusher.push([f"app{i}:1.0" for i in range(50)])

    assert pusher._locks == {}
    assert not pusher._lock_users


@pytest.mark.asyncio
async def test_concurrent_pushes_of_same_target_are_serialized(settings, docker_runtime, registry):
    active = []
    overlaps = []

    async def slow_push(reference):
        if reference in active:
            overlaps.append(reference)
        active.append(reference)
        await asyncio.sleep(0.01)
        active.remove(reference)
        return "pushed"

    docker_runtime.push = AsyncMock(side_effect=slow_push)
    pusher = RegistryPusher(docker_runtime, registry, settings)

    reports = await asyncio.gather(pusher.push(["myapp:1.2.0"]), pusher.push(["myapp:1.2.0"]))

    assert overlaps == []
    assert [r.success_count for r in reports] == [2, 2]
    assert pusher._locks == {}
