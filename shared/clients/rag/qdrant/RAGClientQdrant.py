from shared.helper.HelperConfig import HelperConfig
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.VectorHit import VectorHit
from shared.models.config import EnvConfig


class RAGClientQdrant(RAGClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Qdrant"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._api_key:
            return {"api-key": f"{self._api_key}"}
        return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/healthz"

    def _get_endpoint_collection(self, collection: str) -> str:
        return f"/collections/{collection}"

    def _get_endpoint_check_collection_existence(self, collection: str) -> str:
        return f"/collections/{collection}/exists"

    def _get_endpoint_payload_index(self, collection: str) -> str:
        return f"/collections/{collection}/index?wait=true"

    def _get_endpoint_search(self, collection: str) -> str:
        return f"/collections/{collection}/points/search"

    def _get_endpoint_points(self, collection: str) -> str:
        return f"/collections/{collection}/points?wait=true"

    def _get_endpoint_delete_points(self, collection: str) -> str:
        return f"/collections/{collection}/points/delete?wait=true"

    def _get_endpoint_scroll(self, collection: str) -> str:
        return f"/collections/{collection}/points/scroll"

    ##########################################
    ########### PAYLOAD BUILDER ##############
    ##########################################

    def get_filter_conditions(self, filters: dict[str, str]) -> list[dict]:
        return [{"key": key, "match": {"value": value}} for key, value in filters.items()]

    def get_search_payload(self, vector_field: str, query_vector: list[float], conditions: list[dict], limit: int) -> dict:
        return {
            "vector": {"name": vector_field, "vector": query_vector},
            "filter": {"must": conditions},
            "limit": limit,
            "with_payload": ["doc_id"],
            "with_vector": False,
        }

    def get_create_collection_payload(self, vector_field: str, vector_size: int, distance: str) -> dict:
        return {"vectors": {vector_field: {"size": vector_size, "distance": distance}}}

    def get_payload_index_payload(self, field_name: str) -> dict:
        return {"field_name": field_name, "field_schema": "keyword"}

    def get_upsert_payload(self, point_id: str, vector_field: str, vector: list[float], payload: dict) -> dict:
        return {"points": [{"id": point_id, "vector": {vector_field: vector}, "payload": payload}]}

    def get_delete_payload(self, point_ids: list[str]) -> dict:
        return {"points": point_ids}

    def get_scroll_payload(self, conditions: list[dict], with_payload: bool | list, limit: int, offset: str | int | None = None) -> dict:
        payload = {
            "limit": limit,
            "with_payload": with_payload,
            "with_vector": False,
        }
        if conditions:
            payload["filter"] = {"must": conditions}
        if offset is not None:
            payload["offset"] = offset
        return payload

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def extract_existence(self, raw_response: dict) -> bool:
        return bool(raw_response.get("result", {}).get("exists"))

    def extract_search_hits(self, raw_response: dict) -> list[VectorHit]:
        hits: list[VectorHit] = []
        for point in raw_response.get("result", []) or []:
            doc_id = (point.get("payload") or {}).get("doc_id")
            if doc_id is None:
                self.logging.warning("Qdrant point %s has no doc_id in its payload. Skipping.", point.get("id"))
                continue
            hits.append(VectorHit(id=str(doc_id), score=float(point.get("score", 0.0))))
        return hits

    def extract_scroll_content(self, raw_response: dict) -> list[dict]:
        return raw_response.get("result", {}).get("points", [])

    def extract_next_page_offset(self, raw_response: dict) -> str | int | None:
        return raw_response.get("result", {}).get("next_page_offset")
