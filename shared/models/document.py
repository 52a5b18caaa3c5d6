"""Pydantic models for searchable lesson documents.

Hierarchy:
  SearchableDocument: backend-independent contract shared by every content kind.
  LessonPlan:         plan document, scoped by class and subject.
  LessonNote:         note document, scoped by its parent lesson plan.

The embedding is carried on the model so the indexer and the reindex job can
inspect it, but it is excluded from every serialisation that leaves the service.
"""

from typing import Any, Literal

from pydantic import BaseModel, Field

ContentType = Literal["plans", "notes"]


class LessonResource(BaseModel):
    """External resource attached to a lesson plan (video, document or link)."""

    type: Literal["youtube", "document", "link"]
    title: str
    url: str
    description: str | None = None


class SearchableDocument(BaseModel):
    """Generic searchable document as returned by a document store client.

    Attributes:
        id:          Opaque identifier, stable for the document's lifetime.
        owner_id:    Identifier of the owning user. Every search and listing is scoped to it.
        title:       Short human-readable title, used for exact matching and embedding.
        content:     Structured rich-text block tree, never matched directly.
        embedding:   Vector of the embedding text, absent until first computed.
        created:     Creation timestamp in milliseconds, if the store provides one.
    """

    id: str
    owner_id: str
    title: str
    content: Any = None
    embedding: list[float] | None = Field(default=None, exclude=True)
    created: float | None = None

    def has_embedding(self) -> bool:
        return bool(self.embedding)


class LessonPlan(SearchableDocument):
    """Lesson plan with its class/subject scope and the structured plan sections."""

    class_id: str
    subject_id: str
    objectives: list[str] = []
    materials: list[str] = []
    methods: list[str] = []
    assessment: list[str] = []
    references: list[str] = []
    resources: list[LessonResource] = []


class LessonNote(SearchableDocument):
    """Lesson note belonging to exactly one lesson plan."""

    lesson_plan_id: str
