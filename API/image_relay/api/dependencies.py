"""FastAPI dependency factories reading the application-owned RelayContext."""

from fastapi import Depends, Request

from image_relay.core.context import RelayContext
from image_relay.services.pipeline import PipelineService
from image_relay.services.registry_client import HTTPRegistryClient
from image_relay.services.status_service import StatusService
from image_relay.services.upload_store import UploadStore


def get_context(request: Request) -> RelayContext:
    return request.app.state.context


def get_pipeline(ctx: RelayContext = Depends(get_context)) -> PipelineService:
    return ctx.pipeline


def get_uploads(ctx: RelayContext = Depends(get_context)) -> UploadStore:
    return ctx.uploads


def get_status_service(ctx: RelayContext = Depends(get_context)) -> StatusService:
    return ctx.status


def get_registry(ctx: RelayContext = Depends(get_context)) -> HTTPRegistryClient:
    return ctx.registry
