from abc import abstractmethod
import uuid

from shared.clients.rag.models.Scroll import ScrollResult
from shared.clients.rag.models.VectorHit import VectorHit
from shared.clients.rag.models.VectorPoint import VectorPoint
from shared.clients.ClientInterface import ClientInterface

from shared.helper.HelperConfig import HelperConfig

# Fixed namespace for deterministic point IDs derived from document IDs.
# Changing it orphans every point already stored in the index.
_POINT_ID_NAMESPACE = uuid.UUID("3b0e1c52-7f1d-4a8e-9c3a-5d2f6e1b7a40")


class RAGClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "rag"

    def make_point_id(self, doc_id: str) -> str:
        """Deterministic point ID for a document so re-indexing overwrites instead of duplicating."""
        return str(uuid.uuid5(_POINT_ID_NAMESPACE, doc_id))

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_collection(self, collection: str) -> str:
        """Returns the endpoint path for creating or describing a collection."""
        pass

    @abstractmethod
    def _get_endpoint_check_collection_existence(self, collection: str) -> str:
        pass

    @abstractmethod
    def _get_endpoint_payload_index(self, collection: str) -> str:
        """Returns the endpoint path for creating an index on a payload field."""
        pass

    @abstractmethod
    def _get_endpoint_search(self, collection: str) -> str:
        """Returns the endpoint path for nearest-neighbour search requests."""
        pass

    @abstractmethod
    def _get_endpoint_points(self, collection: str) -> str:
        """Returns the endpoint path for point upserts."""
        pass

    @abstractmethod
    def _get_endpoint_delete_points(self, collection: str) -> str:
        pass

    @abstractmethod
    def _get_endpoint_scroll(self, collection: str) -> str:
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_filter_conditions(self, filters: dict[str, str]) -> list[dict]:
        """
        Translates a flat equality filter into backend filter conditions.

        Args:
            filters (dict[str, str]): Payload field to required value, e.g. {"owner_id": "u1"}.

        Returns:
            list[dict]: Conditions that must all hold.
        """
        pass

    @abstractmethod
    def get_search_payload(self, vector_field: str, query_vector: list[float], conditions: list[dict], limit: int) -> dict:
        """
        Builds the request body of a nearest-neighbour search.

        Args:
            vector_field (str): Named vector to search in.
            query_vector (list[float]): The query embedding.
            conditions (list[dict]): Filter conditions from get_filter_conditions().
            limit (int): Maximum number of hits.
        """
        pass

    @abstractmethod
    def get_create_collection_payload(self, vector_field: str, vector_size: int, distance: str) -> dict:
        pass

    @abstractmethod
    def get_payload_index_payload(self, field_name: str) -> dict:
        pass

    @abstractmethod
    def get_upsert_payload(self, point_id: str, vector_field: str, vector: list[float], payload: dict) -> dict:
        pass

    @abstractmethod
    def get_delete_payload(self, point_ids: list[str]) -> dict:
        pass

    @abstractmethod
    def get_scroll_payload(self, conditions: list[dict], with_payload: bool | list, limit: int, offset: str | int | None = None) -> dict:
        pass

    ########### RESPONSE PARSER ##############
    @abstractmethod
    def extract_existence(self, raw_response: dict) -> bool:
        pass

    @abstractmethod
    def extract_search_hits(self, raw_response: dict) -> list[VectorHit]:
        """
        Extracts (document id, score) pairs from a raw search response, keeping the backend order.
        """
        pass

    @abstractmethod
    def extract_scroll_content(self, raw_response: dict) -> list[dict]:
        pass

    @abstractmethod
    def extract_next_page_offset(self, raw_response: dict) -> str | int | None:
        """
        Returns the cursor of the next scroll page, or None if this was the last page.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_existence_check(self, collection: str) -> bool:
        """Check if a collection exists in the index backend."""
        resp = await self.do_request(
            method="GET",
            endpoint=self._get_endpoint_check_collection_existence(collection),
            raise_on_error=True,
        )
        return self.extract_existence(resp.json())

    async def do_create_collection(self, collection: str, vector_field: str, vector_size: int, distance: str = "Cosine") -> None:
        """Create a collection with one named vector field.

        Args:
            collection (str): Collection name.
            vector_field (str): Name of the vector field.
            vector_size (int): Dimension of the stored vectors.
            distance (str): Distance metric, e.g. "Cosine".
        """
        await self.do_request(
            method="PUT",
            json=self.get_create_collection_payload(vector_field, vector_size, distance),
            endpoint=self._get_endpoint_collection(collection),
            raise_on_error=True,
        )
        self.logging.info("Created collection '%s' (%s, size=%d, distance=%s).", collection, vector_field, vector_size, distance)

    async def do_ensure_collection(
        self,
        collection: str,
        vector_field: str,
        vector_size: int,
        distance: str = "Cosine",
        indexed_fields: list[str] | None = None,
    ) -> bool:
        """Create the collection and its payload indexes if they do not exist yet.

        Args:
            indexed_fields (list[str] | None): Payload fields used in filters.

        Returns:
            bool: True if the collection was created, False if it already existed.
        """
        if await self.do_existence_check(collection):
            self.logging.info("Collection '%s' already exists.", collection)
            return False
        await self.do_create_collection(collection, vector_field, vector_size, distance)
        for field_name in indexed_fields or []:
            await self.do_request(
                method="PUT",
                json=self.get_payload_index_payload(field_name),
                endpoint=self._get_endpoint_payload_index(collection),
                raise_on_error=True,
            )
        return True

    async def do_vector_search(
        self,
        collection: str,
        vector_field: str,
        query_vector: list[float],
        filters: dict[str, str],
        limit: int,
        timeout: float | None = None,
    ) -> list[VectorHit]:
        """Nearest-neighbour search, always pre-filtered by owner_id.

        The owner filter is part of the query itself, so another owner's
        vectors are never fetched.

        Args:
            collection (str): Collection to search.
            vector_field (str): Named vector field.
            query_vector (list[float]): The query embedding.
            filters (dict[str, str]): Equality filter; must contain a non-empty owner_id.
            limit (int): Maximum number of hits.
            timeout (float | None): Per-request timeout in seconds.

        Returns:
            list[VectorHit]: Hits ordered by score, most similar first.

        Raises:
            ValueError: If owner_id is missing from the filter.
        """
        if not filters.get("owner_id"):
            raise ValueError("Vector search requires an owner_id filter. This is a security invariant.")

        conditions = self.get_filter_conditions(filters)
        resp = await self.do_request(
            method="POST",
            json=self.get_search_payload(vector_field, query_vector, conditions, limit),
            endpoint=self._get_endpoint_search(collection),
            raise_on_error=True,
            timeout=timeout,
        )
        return self.extract_search_hits(resp.json())

    async def do_upsert_point(self, collection: str, vector_field: str, vector: list[float], point: VectorPoint) -> None:
        """Insert or replace the point of one document.

        Raises:
            ValueError: If owner_id is missing from the payload.
        """
        if not point.owner_id:
            raise ValueError("Payload must include 'owner_id'. This is a security invariant.")
        await self.do_request(
            method="PUT",
            json=self.get_upsert_payload(self.make_point_id(point.doc_id), vector_field, vector, point.model_dump()),
            endpoint=self._get_endpoint_points(collection),
            raise_on_error=True,
        )

    async def do_delete_documents(self, collection: str, doc_ids: list[str]) -> None:
        """Delete the points of the given documents."""
        if not doc_ids:
            return
        await self.do_request(
            method="POST",
            json=self.get_delete_payload([self.make_point_id(doc_id) for doc_id in doc_ids]),
            endpoint=self._get_endpoint_delete_points(collection),
            raise_on_error=True,
        )

    async def do_scroll(
        self,
        collection: str,
        filters: dict[str, str] | None = None,
        with_payload: bool | list = True,
        limit: int = 1000,
        offset: str | int | None = None,
    ) -> ScrollResult:
        """Scroll a single page of points. Use do_scroll_all() to read every page."""
        resp = await self.do_request(
            method="POST",
            json=self.get_scroll_payload(self.get_filter_conditions(filters or {}), with_payload, limit, offset),
            endpoint=self._get_endpoint_scroll(collection),
            raise_on_error=True,
        )
        raw_response = resp.json()
        return ScrollResult(
            result=self.extract_scroll_content(raw_response),
            status=str(raw_response.get("status", "ok")),
            next_page_offset=self.extract_next_page_offset(raw_response),
        )

    async def do_scroll_all(self, collection: str, filters: dict[str, str] | None = None, with_payload: bool | list = True, page_size: int = 1000) -> ScrollResult:
        """Scroll through all points matching the filter, following next_page_offset."""
        all_points: list[dict] = []
        offset: str | int | None = None
        page = 1
        while True:
            page_result = await self.do_scroll(collection, filters, with_payload, page_size, offset)
            all_points.extend(page_result.result)
            self.logging.debug("Fetched page %d of '%s', %d points so far.", page, collection, len(all_points))
            offset = page_result.next_page_offset
            if offset is None:
                break
            page += 1
        return ScrollResult(result=all_points)
