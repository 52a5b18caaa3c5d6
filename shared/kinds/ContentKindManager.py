from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.kinds.ContentKindInterface import ContentKindInterface
from shared.kinds.notes.ContentKindNotes import ContentKindNotes
from shared.kinds.plans.ContentKindPlans import ContentKindPlans


class ContentKindManager:
    """
    Holds one ContentKind per content type and resolves "plans" / "notes" to it.
    """

    def __init__(self, helper_config: HelperConfig, store_client: StoreClientInterface):
        self.logging = helper_config.get_logger()
        self._kinds: dict[str, ContentKindInterface] = {}
        for kind_class in (ContentKindPlans, ContentKindNotes):
            kind = kind_class(helper_config=helper_config, store_client=store_client)
            self._kinds[kind.get_content_type()] = kind

    def get_kind(self, content_type: str) -> ContentKindInterface:
        """
        Raises:
            ValueError: If the content type is unknown.
        """
        if content_type not in self._kinds:
            raise ValueError(f"Unknown content type '{content_type}'. Expected one of {list(self._kinds)}.")
        return self._kinds[content_type]

    def get_kinds(self) -> list[ContentKindInterface]:
        return list(self._kinds.values())
