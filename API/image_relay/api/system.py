from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from image_relay.api.dependencies import get_status_service
from image_relay.services.status_service import StatusService

router = APIRouter(prefix="/api", tags=["system"])


@router.get("/test-docker-setup", summary="Check that Docker, the registry and the upload directory are usable")
async def test_docker_setup(status_service: StatusService = Depends(get_status_service)):
    results = await status_service.setup_check()
    return {"message": "Docker setup test completed", **results}


@router.get("/health")
async def health():
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": {"backend": "running"},
    }
