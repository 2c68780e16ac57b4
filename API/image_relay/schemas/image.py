# image_relay/schemas/image.py
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Literal, Optional


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------
# Upload pipeline result
# ---------------------------
class PushOutcomeResponse(CamelModel):
    original_name: str
    local_name: str
    registry_url: str
    tag: str
    status: Literal["success", "failed"]
    type: Literal["original", "latest"]
    error: Optional[str] = None


class PipelineResultResponse(CamelModel):
    loaded_images: list[str]
    pushed_images: list[PushOutcomeResponse]
    errors: list[str]
    warnings: list[str]


class UploadResponse(CamelModel):
    message: str
    file: str
    docker_result: PipelineResultResponse

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "message": "Docker tar file uploaded and images processed successfully",
                "file": "0b6c1f2e-5d1a-4c1e-9a57-3f7f4a8c9d10_myapp.tar",
                "dockerResult": {
                    "loadedImages": ["myapp:1.2.0"],
                    "pushedImages": [
                        {
                            "originalName": "myapp:1.2.0",
                            "localName": "localhost:5001/myapp:1.2.0",
                            "registryUrl": "localhost:5001",
                            "tag": "1.2.0",
                            "status": "success",
                            "type": "original",
                        },
                        {
                            "originalName": "myapp:1.2.0",
                            "localName": "localhost:5001/myapp:latest",
                            "registryUrl": "localhost:5001",
                            "tag": "latest",
                            "status": "success",
                            "type": "latest",
                        },
                    ],
                    "errors": [],
                    "warnings": [],
                },
            }
        },
    )


class ErrorResponse(BaseModel):
    error: str
    details: Optional[str] = None


# ---------------------------
# Engine / registry status
# ---------------------------
class LocalImageResponse(BaseModel):
    name: str
    id: str
    size: str
    created: str


class RegistryInfo(BaseModel):
    url: str
    accessible: bool


class DockerDaemonInfo(BaseModel):
    accessible: bool
    version: Optional[str] = None


class DockerImagesStatusResponse(CamelModel):
    local_images: list[LocalImageResponse]
    registry_info: RegistryInfo
    docker_daemon: DockerDaemonInfo


class PullRequest(CamelModel):
    image_name: Optional[str] = Field(None, description="Image to pull, e.g. myapp:1.2.0")


class PullResponse(CamelModel):
    image_name: str
    success: bool
    error: Optional[str] = None
    output: Optional[str] = None
