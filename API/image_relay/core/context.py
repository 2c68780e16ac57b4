from dataclasses import dataclass

from image_relay.core.config import Settings
from image_relay.domain.ports import DockerRuntime
from image_relay.services.docker_runtime import DockerSDKRuntime
from image_relay.services.image_loader import ImageLoader
from image_relay.services.pipeline import PipelineService
from image_relay.services.registry_client import HTTPRegistryClient
from image_relay.services.registry_pusher import RegistryPusher
from image_relay.services.status_service import StatusService
from image_relay.services.tar_validator import TarValidator
from image_relay.services.upload_store import UploadStore


@dataclass
class RelayContext:
    """Everything a request handler needs, owned by the application instead of module globals."""
    settings: Settings
    docker_runtime: DockerRuntime
    registry: HTTPRegistryClient
    uploads: UploadStore
    pipeline: PipelineService
    status: StatusService


def build_context(
    settings: Settings | None = None,
    docker_runtime: DockerRuntime | None = None,
    registry: HTTPRegistryClient | None = None,
) -> RelayContext:
    settings = settings or Settings()
    docker_runtime = docker_runtime or DockerSDKRuntime(settings)
    registry = registry or HTTPRegistryClient(settings)
    uploads = UploadStore(settings)

    pipeline = PipelineService(
        docker_runtime,
        TarValidator(settings),
        ImageLoader(docker_runtime, settings),
        RegistryPusher(docker_runtime, registry, settings),
        uploads,
    )
    return RelayContext(
        settings=settings,
        docker_runtime=docker_runtime,
        registry=registry,
        uploads=uploads,
        pipeline=pipeline,
        status=StatusService(docker_runtime, registry, settings),
    )
