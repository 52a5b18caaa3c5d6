"""Pydantic models for search scopes, requests and responses."""

from typing import Literal

from pydantic import BaseModel, Field

from shared.models.document import ContentType, LessonNote, LessonPlan


class SearchScope(BaseModel):
    """Typed scope filter for every search and listing path.

    owner_id is mandatory. The optional fields only ever narrow the result set;
    a field that does not apply to the searched content kind is ignored.
    """

    owner_id: str = Field(min_length=1)
    class_id: str | None = None
    subject_id: str | None = None
    lesson_plan_id: str | None = None

    def to_filters(self, scope_fields: list[str]) -> dict[str, str]:
        """Build the flat equality filter for one content kind.

        Args:
            scope_fields (list[str]): Secondary scope fields the content kind supports.

        Returns:
            dict[str, str]: {"owner_id": ..., <field>: <value>, ...} for every supplied field.
        """
        filters = {"owner_id": self.owner_id}
        for field in scope_fields:
            value = getattr(self, field, None)
            if value:
                filters[field] = value
        return filters


class SearchRequest(BaseModel):
    """Incoming search query from the frontend. The owner comes from the caller identity."""

    query: str
    content_type: ContentType
    class_id: str | None = None
    subject_id: str | None = None
    lesson_plan_id: str | None = None
    limit: int | None = None
    timeout_seconds: float | None = Field(default=None, gt=0)

    def get_scope(self, owner_id: str | None) -> SearchScope | None:
        if not owner_id:
            return None
        return SearchScope(
            owner_id=owner_id,
            class_id=self.class_id,
            subject_id=self.subject_id,
            lesson_plan_id=self.lesson_plan_id,
        )


class SimilarRequest(SearchRequest):
    """Recommender request. exclude_id drops the document the query was derived from."""

    exclude_id: str | None = None


class ScoredDocument(BaseModel):
    """A hydrated document with the similarity score the vector index assigned to it."""

    content_type: ContentType
    similarity_score: float
    document: LessonPlan | LessonNote


class HybridSearchItem(BaseModel):
    """One entry of the merged title + semantic list.

    similarity_score is None for pure title matches.
    """

    match_type: Literal["title", "semantic"]
    similarity_score: float | None = None
    document: LessonPlan | LessonNote


class SimilarDocument(BaseModel):
    """Compact reference document used as context for content generation."""

    id: str
    content_type: ContentType
    title: str
    excerpt: str
    similarity_score: float
    objectives: list[str] = []
    methods: list[str] = []


class SearchResponse(BaseModel):
    query: str
    content_type: ContentType
    results: list[ScoredDocument]
    total: int


class HybridSearchResponse(BaseModel):
    query: str
    content_type: ContentType
    results: list[HybridSearchItem]
    total: int


class SimilarResponse(BaseModel):
    query: str
    content_type: ContentType
    results: list[SimilarDocument]
    total: int
