# image_relay/api/images.py
import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends, File, UploadFile

from image_relay.api.dependencies import get_pipeline, get_status_service, get_uploads
from image_relay.core.errors import BadRequestError, RelayError, UploadProcessingError
from image_relay.schemas.image import (
    DockerImagesStatusResponse,
    ErrorResponse,
    PipelineResultResponse,
    PullRequest,
    PullResponse,
    UploadResponse,
)
from image_relay.services.pipeline import PipelineService
from image_relay.services.status_service import StatusService
from image_relay.services.upload_store import UploadStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["images"])


# ---------------------------
# Upload a tarball, load it and push to the registry
# ---------------------------
@router.post(
    "/upload-docker-tar",
    response_model=UploadResponse,
    response_model_exclude_none=True,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Upload a Docker image tarball",
    description="Loads every image in the uploaded .tar into Docker and pushes each one to the "
                "local registry under its own tag and under `latest`.",
)
async def upload_docker_tar(
    docker_tar: UploadFile | None = File(
        None, alias="dockerTar", description="Docker image tarball (e.g. the output of `docker save`)"
    ),
    uploads: UploadStore = Depends(get_uploads),
    pipeline: PipelineService = Depends(get_pipeline),
):
    try:
        tar_path = await uploads.save(docker_tar)
        result = await pipeline.run(tar_path)
    except RelayError:
        raise
    except Exception as e:
        logger.exception(f"Docker tar upload error: {e}")
        raise UploadProcessingError(str(e))

    return UploadResponse(
        message="Docker tar file uploaded and images processed successfully",
        file=tar_path.name,
        docker_result=PipelineResultResponse.model_validate(asdict(result)),
    )


# ---------------------------
# Local engine + registry status
# ---------------------------
@router.get("/docker-images-status", response_model=DockerImagesStatusResponse)
async def docker_images_status(status_service: StatusService = Depends(get_status_service)):
    return DockerImagesStatusResponse.model_validate(await status_service.docker_images_status())


# ---------------------------
# Pull an image back from the registry
# ---------------------------
@router.post(
    "/pull-from-registry",
    response_model=PullResponse,
    responses={400: {"model": ErrorResponse}},
)
async def pull_from_registry(
    payload: PullRequest,
    status_service: StatusService = Depends(get_status_service),
):
    if not payload.image_name:
        raise BadRequestError(error="Image name is required")
    return PullResponse.model_validate(await status_service.pull_from_registry(payload.image_name))
