from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    UPLOAD_DIR: Path = Field(
        default=Path("storage/docker-images"),
        description="Where uploaded Docker tar files are staged while they are processed"
    )

    MAX_TAR_SIZE_BYTES: int = 5 * 1024 * 1024 * 1024  # 5GB

    # Registry
    LOCAL_REGISTRY_URL: str = Field(
        default="localhost:5001",
        description="host[:port] of the registry images are pushed to"
    )
    REGISTRY_SCHEME: str = "http"
    REGISTRY_TIMEOUT_S: float = 5.0

    # Docker engine timeouts (seconds)
    DOCKER_LOAD_TIMEOUT_S: float = 300.0
    DOCKER_PUSH_TIMEOUT_S: float = 600.0
    DOCKER_PULL_TIMEOUT_S: float = 300.0
    DOCKER_DEFAULT_TIMEOUT_S: float = 30.0

    # Fallback image discovery after `docker load`
    RECENT_IMAGE_SCAN: int = 20
    RECENT_IMAGE_LIMIT: int = 5

    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: list[str] = ["http://localhost:5173"]

    model_config = SettingsConfigDict(
        env_file=".env"
    )

    @property
    def registry_base_url(self) -> str:
        return f"{self.REGISTRY_SCHEME}://{self.LOCAL_REGISTRY_URL}"
