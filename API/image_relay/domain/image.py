from dataclasses import dataclass, field
from typing import Literal

from image_relay.core.errors import ErrorKind

DEFAULT_TAG = "latest"

PushStatus = Literal["success", "failed"]
PushType = Literal["original", "latest"]


@dataclass(frozen=True)
class ImageReference:
    """A `[registry/]repository[:tag]` string and the parts derived from it."""
    name: str
    repository: str
    tag: str = DEFAULT_TAG

    @classmethod
    def parse(cls, name: str) -> "ImageReference":
        name = name.strip()
        base = name.rsplit("/", 1)[-1]
        base = base.split("@", 1)[0]  # drop digest
        repository, _, tag = base.partition(":")
        return cls(name=name, repository=repository, tag=tag or DEFAULT_TAG)

    def target(self, registry: str, tag: str | None = None) -> str:
        return f"{registry}/{self.repository}:{tag or self.tag}"


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    error: str | None = None
    kind: ErrorKind | None = None

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(is_valid=True)

    @classmethod
    def fail(cls, kind: ErrorKind, error: str) -> "ValidationResult":
        return cls(is_valid=False, error=error, kind=kind)


@dataclass(frozen=True)
class LoadResult:
    images: tuple[str, ...] = ()
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()


@dataclass
class PushOutcome:
    original_name: str
    local_name: str
    registry_url: str
    tag: str
    status: PushStatus
    type: PushType
    error: str | None = None


@dataclass
class PushReport:
    pushed_images: list[PushOutcome] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return sum(1 for outcome in self.pushed_images if outcome.status == "success")


@dataclass
class PipelineResult:
    loaded_images: list[str] = field(default_factory=list)
    pushed_images: list[PushOutcome] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def add_load(self, load: LoadResult) -> None:
        self.loaded_images = list(load.images)
        self.errors.extend(load.errors)
        self.warnings.extend(load.warnings)

    def add_push(self, report: PushReport) -> None:
        self.pushed_images.extend(report.pushed_images)
        self.errors.extend(report.errors)
        self.warnings.extend(report.warnings)


@dataclass
class LocalImage:
    name: str
    id: str
    size: str
    created: str
