from abc import ABC, abstractmethod

from shared.clients.rag.models.VectorPoint import VectorPoint
from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.helper.text_helper import EMBEDDING_TEXT_MAX_CHARS, build_embedding_text, build_excerpt, hash_text
from shared.models.document import ContentType, SearchableDocument
from shared.models.search import SearchScope, SimilarDocument


class ContentKindInterface(ABC):
    """
    Everything the search engine and the indexer need to know about one content kind:
    where its vectors live, which scope fields it supports and how its documents
    are loaded and turned into embedding text.
    """

    def __init__(self, helper_config: HelperConfig, store_client: StoreClientInterface):
        self.logging = helper_config.get_logger()
        self.store_client = store_client
        self.collection_name = helper_config.get_string_val(
            f"RAG_COLLECTION_{self.get_content_type().upper()}", default=self._get_default_collection_name()
        )
        self.vector_field = helper_config.get_string_val("RAG_VECTOR_FIELD", default="embedding")
        self.text_max_chars = int(helper_config.get_number_val("INDEXER_TEXT_MAX_CHARS", default=EMBEDDING_TEXT_MAX_CHARS))

    ##########################################
    ################ GETTER ##################
    ##########################################

    @abstractmethod
    def get_content_type(self) -> ContentType:
        pass

    @abstractmethod
    def _get_default_collection_name(self) -> str:
        pass

    @abstractmethod
    def get_scope_fields(self) -> list[str]:
        """
        Returns the secondary scope fields of this kind, e.g. ["class_id", "subject_id"].
        """
        pass

    def get_filters(self, scope: SearchScope) -> dict[str, str]:
        return scope.to_filters(self.get_scope_fields())

    def get_indexed_fields(self) -> list[str]:
        """Payload fields that need an index in the vector collection."""
        return ["owner_id"] + self.get_scope_fields()

    ##########################################
    ############### DOCUMENTS ################
    ##########################################

    async def hydrate(self, document_ids: list[str], timeout: float | None = None) -> list[SearchableDocument]:
        """Load full documents for vector hits. Missing IDs are absent from the result."""
        return await self.store_client.do_fetch_documents_by_ids(self.get_content_type(), document_ids, timeout=timeout)

    async def fetch(self, document_id: str) -> SearchableDocument | None:
        return await self.store_client.do_fetch_document(self.get_content_type(), document_id)

    async def list_scoped(self, scope: SearchScope, timeout: float | None = None) -> list[SearchableDocument]:
        return await self.store_client.do_list_scoped(self.get_content_type(), self.get_filters(scope), timeout=timeout)

    async def list_all(self) -> list[SearchableDocument]:
        return await self.store_client.do_fetch_all_documents(self.get_content_type())

    async def patch_embedding(self, document_id: str, embedding: list[float]) -> None:
        await self.store_client.do_patch_embedding(self.get_content_type(), document_id, embedding)

    ##########################################
    ############### INDEXING #################
    ##########################################

    async def _get_context_prefix(self, document: SearchableDocument) -> str | None:
        """
        Text put in front of the title to bias the embedding, e.g. a parent title. None for no prefix.
        """
        return None

    async def build_embedding_text(self, document: SearchableDocument) -> str:
        """
        Build the bounded embedding text "<prefix> <title> <content>" of a document.
        """
        prefix = await self._get_context_prefix(document)
        return build_embedding_text(document.title, document.content, context_prefix=prefix, max_chars=self.text_max_chars)

    def _get_point_scope(self, document: SearchableDocument) -> dict[str, str | None]:
        return {field: getattr(document, field, None) for field in self.get_scope_fields()}

    def build_vector_point(self, document: SearchableDocument, embedding_text: str) -> VectorPoint:
        return VectorPoint(
            doc_id=document.id,
            content_type=self.get_content_type(),
            owner_id=document.owner_id,
            title=document.title,
            text_hash=hash_text(embedding_text),
            **self._get_point_scope(document),
        )

    ##########################################
    ############## PRESENTATION ##############
    ##########################################

    def build_similar_document(self, document: SearchableDocument, score: float) -> SimilarDocument:
        return SimilarDocument(
            id=document.id,
            content_type=self.get_content_type(),
            title=document.title,
            excerpt=build_excerpt(document.content),
            similarity_score=score,
        )
