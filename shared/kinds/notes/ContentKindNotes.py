from shared.kinds.ContentKindInterface import ContentKindInterface
from shared.models.document import ContentType, SearchableDocument


class ContentKindNotes(ContentKindInterface):
    """Lesson notes, scoped by their parent lesson plan."""

    def get_content_type(self) -> ContentType:
        return "notes"

    def _get_default_collection_name(self) -> str:
        return "lesson_notes"

    def get_scope_fields(self) -> list[str]:
        return ["lesson_plan_id"]

    async def _get_context_prefix(self, document: SearchableDocument) -> str | None:
        """
        The parent plan title. A missing or unreadable parent gives no prefix.
        """
        plan_id = getattr(document, "lesson_plan_id", None)
        if not plan_id:
            return None
        try:
            plan = await self.store_client.do_fetch_document("plans", plan_id)
        except Exception as e:
            self.logging.warning("Could not load parent plan %s of note %s: %s", plan_id, document.id, e)
            return None
        return plan.title if plan else None
