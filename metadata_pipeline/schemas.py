"""
Pipeline — Pydantic V2 message and artifact schemas.
"""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from metadata_pipeline.constants import ImageFormat


class IngestMessage(BaseModel):
    """Queue message: one eligible source object. Duplicates are expected."""

    # Unknown keys are tolerated so older/newer producers can share the queue.
    model_config = ConfigDict(extra="ignore", frozen=True)

    bucket: str = Field(min_length=1)
    key: str = Field(min_length=1)
    etag: str | None = None

    def to_body(self) -> str:
        return self.model_dump_json(exclude_none=True)


class Metadata(BaseModel):
    """Derived artifact. Written once, never updated; existence marks completion."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    source_bucket: str
    source_key: str
    width: int = Field(ge=0)
    height: int = Field(ge=0)
    file_size_bytes: int = Field(ge=0)
    format: ImageFormat

    def to_json_bytes(self) -> bytes:
        return self.model_dump_json().encode("utf-8")
