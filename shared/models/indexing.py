"""Pydantic models for mutation events and reindex runs."""

from typing import Literal

from pydantic import BaseModel, Field

from shared.models.document import ContentType


class MutationEvent(BaseModel):
    """Webhook payload sent by the write path after a mutation commits."""

    document_id: str = Field(min_length=1)
    content_type: ContentType
    event: Literal["created", "updated", "deleted"] = "updated"


class ReindexRequest(BaseModel):
    """Optional restriction of a full reindex to some content kinds. None means all."""

    content_types: list[ContentType] | None = None


class ReindexReport(BaseModel):
    """Outcome of a full reindex for one content kind."""

    content_type: ContentType
    total: int = 0
    indexed: int = 0
    skipped: int = 0
    failed: int = 0
    orphans_removed: int = 0
