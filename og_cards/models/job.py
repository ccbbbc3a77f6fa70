"""Data models for render jobs and capture results."""

from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator


class RenderJob(BaseModel):
    """One social card to render: an identifier plus the template's display fields."""

    model_config = ConfigDict(frozen=True)

    identifier: str = Field(description="Unique slug; also names the output file")
    fields: Mapping[str, str | None] = Field(
        default_factory=dict,
        validate_default=True,
        description="Display fields passed to the template, read-only",
    )

    @field_validator("identifier")
    @classmethod
    def validate_identifier(cls, v: str) -> str:
        """Identifiers become file names, so they must be plain and non-empty."""
        v = v.strip()
        if not v:
            raise ValueError("Identifier cannot be empty")
        if "/" in v or "\\" in v or v in (".", ".."):
            raise ValueError(f"Identifier cannot contain path separators: {v!r}")
        return v

    @field_validator("fields")
    @classmethod
    def freeze_fields(cls, v: Mapping[str, str | None]) -> Mapping[str, str | None]:
        return MappingProxyType(dict(v))

    @field_serializer("fields")
    def serialize_fields(self, v: Mapping[str, str | None]) -> dict[str, str | None]:
        return dict(v)

    @classmethod
    def from_fields(
        cls,
        slug: str,
        title: str,
        subtitle: str | None = None,
        background: str | None = None,
    ) -> "RenderJob":
        """Build a job from the template's standard fields."""
        return cls(
            identifier=slug,
            fields={"title": title, "subtitle": subtitle, "background": background},
        )

    @property
    def output_filename(self) -> str:
        return f"{self.identifier}.png"

    def query_params(self) -> dict[str, str]:
        """Fields with a value; empty ones are left to the template's defaults."""
        return {key: value for key, value in self.fields.items() if value}


class CaptureResult(BaseModel):
    """Outcome of capturing a single job."""

    identifier: str
    path: Path | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.path is not None


class CaptureSummary(BaseModel):
    """Aggregate outcome of a capture run."""

    total: int = Field(description="Number of jobs submitted")
    succeeded: int = Field(description="Number of images written")
    failed: int = Field(description="Number of failed captures")
    execution_time_seconds: float = Field(description="Wall time of the run in seconds")
    results: list[CaptureResult] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list, description="Failure messages")

    @property
    def success_rate(self) -> float:
        """Share of successful captures."""
        if self.total == 0:
            return 0.0
        return self.succeeded / self.total

    @property
    def written(self) -> list[Path]:
        return [r.path for r in self.results if r.ok and r.path is not None]
