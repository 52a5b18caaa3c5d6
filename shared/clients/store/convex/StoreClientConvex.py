from typing import Any, Tuple

from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.document import ContentType, LessonNote, LessonPlan, SearchableDocument

# function module and id argument per content kind
_MODULES: dict[str, dict[str, str]] = {
    "plans": {"module": "functions/lessonPlans", "id_arg": "lessonPlanId", "ids_arg": "planIds", "suffix": "Plans"},
    "notes": {"module": "functions/lessonNotes", "id_arg": "lessonNoteId", "ids_arg": "noteIds", "suffix": "Notes"},
}

# payload field -> convex field
_SCOPE_ARGS = {
    "owner_id": "userId",
    "class_id": "classId",
    "subject_id": "subjectId",
    "lesson_plan_id": "lessonPlanId",
}


class StoreClientConvex(StoreClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._deploy_key = self.get_config_val("DEPLOY_KEY", default=None, val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Convex"

    def _get_module(self, content_type: ContentType) -> dict[str, str]:
        if content_type not in _MODULES:
            raise ValueError(f"Unknown content type '{content_type}' for Convex store.")
        return _MODULES[content_type]

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="DEPLOY_KEY", val_type="string", default=None),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {"Authorization": f"Convex {self._deploy_key}"}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/version"

    def _get_endpoint_query(self) -> str:
        return "/api/query"

    def _get_endpoint_mutation(self) -> str:
        return "/api/mutation"

    ##########################################
    ########### PAYLOAD BUILDER ##############
    ##########################################

    def get_call_payload(self, path: str, args: dict) -> dict:
        return {"path": path, "args": args, "format": "json"}

    def get_load_by_ids_call(self, content_type: ContentType, document_ids: list[str]) -> Tuple[str, dict]:
        module = self._get_module(content_type)
        return f"{module['module']}/queries.internal:load{module['suffix']}ByIds", {module["ids_arg"]: list(document_ids)}

    def get_list_scoped_call(self, content_type: ContentType, filters: dict[str, str]) -> Tuple[str, dict]:
        module = self._get_module(content_type)
        args = {_SCOPE_ARGS[key]: value for key, value in filters.items() if key in _SCOPE_ARGS and value}
        return f"{module['module']}/queries.internal:list{module['suffix']}ForUser", args

    def get_list_page_call(self, content_type: ContentType, cursor: str | None, page_size: int) -> Tuple[str, dict]:
        module = self._get_module(content_type)
        return (
            f"{module['module']}/queries.internal:list{module['suffix']}ForIndexing",
            {"paginationOpts": {"numItems": page_size, "cursor": cursor}},
        )

    def get_patch_embedding_call(self, content_type: ContentType, document_id: str, embedding: list[float]) -> Tuple[str, dict]:
        module = self._get_module(content_type)
        path = "mutations.internal:updateEmbedding" if content_type == "plans" else "mutations:updateEmbeddingInternal"
        return f"{module['module']}/{path}", {module["id_arg"]: document_id, "embedding": embedding}

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def extract_value(self, raw_response: dict) -> Any:
        if raw_response.get("status") != "success":
            raise ValueError(f"Convex function failed: {raw_response.get('errorMessage', 'unknown error')}")
        return raw_response.get("value")

    def extract_page(self, value: Any) -> Tuple[list[dict], str | None]:
        if not isinstance(value, dict):
            raise ValueError(f"Convex paginated result must be an object, got {type(value).__name__}.")
        next_cursor = None if value.get("isDone", True) else value.get("continueCursor")
        return value.get("page", []), next_cursor

    def parse_document(self, content_type: ContentType, raw: dict) -> SearchableDocument:
        """
        Maps a Convex document ({_id, userId, _creationTime, ...}) onto the shared models.
        """
        for key in ("_id", "userId"):
            if not raw.get(key):
                raise ValueError(f"Missing required field '{key}'.")
        base = {
            "id": raw["_id"],
            "owner_id": raw["userId"],
            "title": raw.get("title") or "",
            "content": raw.get("content"),
            "embedding": raw.get("embedding") or None,
            "created": raw.get("_creationTime"),
        }
        if content_type == "plans":
            return LessonPlan(
                **base,
                class_id=raw.get("classId", ""),
                subject_id=raw.get("subjectId", ""),
                objectives=raw.get("objectives") or [],
                materials=raw.get("materials") or [],
                methods=raw.get("methods") or [],
                assessment=raw.get("assessment") or [],
                references=raw.get("references") or [],
                resources=raw.get("resources") or [],
            )
        return LessonNote(**base, lesson_plan_id=raw.get("lessonPlanId", ""))
