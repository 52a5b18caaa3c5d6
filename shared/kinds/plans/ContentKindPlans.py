from shared.kinds.ContentKindInterface import ContentKindInterface
from shared.models.document import ContentType, LessonPlan, SearchableDocument
from shared.models.search import SimilarDocument


class ContentKindPlans(ContentKindInterface):
    """Lesson plans, scoped by class and subject."""

    def get_content_type(self) -> ContentType:
        return "plans"

    def _get_default_collection_name(self) -> str:
        return "lesson_plans"

    def get_scope_fields(self) -> list[str]:
        return ["class_id", "subject_id"]

    def build_similar_document(self, document: SearchableDocument, score: float) -> SimilarDocument:
        similar = super().build_similar_document(document, score)
        if isinstance(document, LessonPlan):
            similar.objectives = list(document.objectives)
            similar.methods = list(document.methods)
        return similar
