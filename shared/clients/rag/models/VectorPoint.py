"""VectorPoint model: metadata stored alongside each document vector in the index."""

from pydantic import BaseModel


class VectorPoint(BaseModel):
    """Payload stored next to a document's embedding in the vector index.

    One point per document. The owner_id field is mandatory and enforced as a
    security invariant on every upsert and search. It must never be absent.

    Attributes:
        doc_id:          Document ID as assigned by the document store.
        content_type:    "plans" or "notes".
        owner_id:        Mandatory. Owning user, used for access isolation.
        title:           Document title at embedding time, for diagnostics only.
        class_id:        Class scope of a lesson plan.
        subject_id:      Subject scope of a lesson plan.
        lesson_plan_id:  Parent plan of a lesson note.
        text_hash:       SHA-256 of the embedding text, used by the reindex job
                         to skip documents whose text did not change.
    """

    doc_id: str
    content_type: str
    owner_id: str
    title: str = ""

    class_id: str | None = None
    subject_id: str | None = None
    lesson_plan_id: str | None = None

    text_hash: str | None = None
