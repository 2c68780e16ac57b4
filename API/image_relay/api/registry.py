from fastapi import APIRouter, Depends

from image_relay.api.dependencies import get_registry
from image_relay.services.registry_client import HTTPRegistryClient

router = APIRouter(prefix="/api", tags=["registry"])


@router.get("/registry-images", summary="List every repository:tag held by the registry")
async def registry_images(registry: HTTPRegistryClient = Depends(get_registry)):
    return await registry.list_images()


@router.get("/registry-summary", summary="Registry repositories grouped with their tags")
async def registry_summary(registry: HTTPRegistryClient = Depends(get_registry)):
    return await registry.summary()
