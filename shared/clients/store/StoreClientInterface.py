from abc import abstractmethod
from typing import Any, Tuple

from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import ContentType, SearchableDocument


class StoreClientInterface(ClientInterface):
    """
    Document store backend. The store is the source of truth for documents
    and their embeddings; the vector index only mirrors it.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "store"

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_query(self) -> str:
        """
        Returns the endpoint path for read calls (e.g. "/api/query").
        """
        pass

    @abstractmethod
    def _get_endpoint_mutation(self) -> str:
        """
        Returns the endpoint path for write calls (e.g. "/api/mutation").
        """
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_call_payload(self, path: str, args: dict) -> dict:
        """
        Wraps a function path and its arguments into the request body.
        """
        pass

    @abstractmethod
    def get_load_by_ids_call(self, content_type: ContentType, document_ids: list[str]) -> Tuple[str, dict]:
        """
        Returns the function path and arguments loading documents by ID.
        Unknown IDs must be skipped by the backend, not reported as errors.
        """
        pass

    @abstractmethod
    def get_list_scoped_call(self, content_type: ContentType, filters: dict[str, str]) -> Tuple[str, dict]:
        """
        Returns the function path and arguments listing one owner's documents.

        Args:
            content_type (ContentType): The content kind to list.
            filters (dict[str, str]): {"owner_id": ..., <scope field>: <value>}.
        """
        pass

    @abstractmethod
    def get_list_page_call(self, content_type: ContentType, cursor: str | None, page_size: int) -> Tuple[str, dict]:
        """
        Returns the function path and arguments of one page of the unscoped listing used by the reindex job.
        """
        pass

    @abstractmethod
    def get_patch_embedding_call(self, content_type: ContentType, document_id: str, embedding: list[float]) -> Tuple[str, dict]:
        pass

    ########### RESPONSE PARSER ##############
    @abstractmethod
    def extract_value(self, raw_response: dict) -> Any:
        """
        Returns the function result of a call response.

        Raises:
            ValueError: If the backend reports that the function failed.
        """
        pass

    @abstractmethod
    def extract_page(self, value: Any) -> Tuple[list[dict], str | None]:
        """
        Splits a paginated result into its raw documents and the next cursor (None on the last page).
        """
        pass

    @abstractmethod
    def parse_document(self, content_type: ContentType, raw: dict) -> SearchableDocument:
        """
        Converts a raw backend document into LessonPlan or LessonNote.

        Raises:
            ValueError: If required fields are missing.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def _do_call(self, kind: str, path: str, args: dict, timeout: float | None = None) -> Any:
        endpoint = self._get_endpoint_mutation() if kind == "mutation" else self._get_endpoint_query()
        resp = await self.do_request(
            method="POST",
            json=self.get_call_payload(path, args),
            endpoint=endpoint,
            raise_on_error=True,
            timeout=timeout,
        )
        return self.extract_value(resp.json())

    def _parse_documents(self, content_type: ContentType, raw_documents: list[dict]) -> list[SearchableDocument]:
        documents = []
        for raw in raw_documents or []:
            try:
                documents.append(self.parse_document(content_type, raw))
            except ValueError as e:
                self.logging.warning("Skipping malformed %s document %s: %s", content_type, raw.get("_id", "?"), e)
        return documents

    async def do_fetch_documents_by_ids(self, content_type: ContentType, document_ids: list[str], timeout: float | None = None) -> list[SearchableDocument]:
        """
        Loads documents by ID. IDs that no longer exist are missing from the result.

        Args:
            content_type (ContentType): The content kind of the IDs.
            document_ids (list[str]): IDs to load, typically vector search hits.
            timeout (float | None): Per-request timeout in seconds.

        Returns:
            list[SearchableDocument]: The documents found, in no guaranteed order.
        """
        if not document_ids:
            return []
        path, args = self.get_load_by_ids_call(content_type, document_ids)
        return self._parse_documents(content_type, await self._do_call("query", path, args, timeout))

    async def do_fetch_document(self, content_type: ContentType, document_id: str, timeout: float | None = None) -> SearchableDocument | None:
        """Loads a single document, or None if it does not exist."""
        documents = await self.do_fetch_documents_by_ids(content_type, [document_id], timeout=timeout)
        return next((doc for doc in documents if doc.id == document_id), None)

    async def do_list_scoped(self, content_type: ContentType, filters: dict[str, str], timeout: float | None = None) -> list[SearchableDocument]:
        """
        Lists every document of one owner, narrowed by the optional scope fields.

        Raises:
            ValueError: If owner_id is missing from the filter.
        """
        if not filters.get("owner_id"):
            raise ValueError("Scoped listing requires an owner_id filter.")
        path, args = self.get_list_scoped_call(content_type, filters)
        return self._parse_documents(content_type, await self._do_call("query", path, args, timeout))

    async def do_fetch_all_documents(self, content_type: ContentType, page_size: int = 200) -> list[SearchableDocument]:
        """
        Fetches every document of a content kind across all owners, page by page.

        Returns:
            list[SearchableDocument]: All documents including their stored embeddings.
        """
        documents: list[SearchableDocument] = []
        cursor: str | None = None
        page = 1
        while True:
            path, args = self.get_list_page_call(content_type, cursor, page_size)
            raw_documents, cursor = self.extract_page(await self._do_call("query", path, args))
            documents.extend(self._parse_documents(content_type, raw_documents))
            self.logging.info("Fetched %s page %d from %s, total documents so far: %d", content_type, page, self._get_engine_name(), len(documents))
            if cursor is None:
                break
            page += 1
        return documents

    async def do_patch_embedding(self, content_type: ContentType, document_id: str, embedding: list[float]) -> None:
        """
        Replaces the stored embedding of one document in a single write.
        """
        path, args = self.get_patch_embedding_call(content_type, document_id, embedding)
        await self._do_call("mutation", path, args)
