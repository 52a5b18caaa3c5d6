from shared.helper.HelperConfig import HelperConfig
from shared.clients.ClientInterface import ClientInterface


class ClientManager:
    """
    Instantiates the backend client selected by "<TYPE>_ENGINE".

    The engine name maps onto a module and class by convention:
    EMBED_ENGINE=ollama loads shared.clients.embed.ollama.EmbedClientOllama.
    """

    client_type: str = ""
    class_prefix: str = ""

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.client = self._initialize_client()

    def _get_engine_from_env(self) -> str:
        """
        Reads the engine for this client type from the environment.

        Returns:
            str: The engine name, capitalised (e.g. "Qdrant").

        Raises:
            ValueError: If no engine is configured.
        """
        engine = self.helper_config.get_string_val(f"{self.client_type.upper()}_ENGINE", default="")
        if not engine:
            raise ValueError(f"No {self.client_type.upper()} engine specified in configuration.")
        return engine.strip().lower().capitalize()

    def _initialize_client(self) -> ClientInterface:
        """
        Imports and instantiates the client class for the configured engine.

        Raises:
            ValueError: If the engine has no matching client implementation.
        """
        engine = self._get_engine_from_env()
        class_name = f"{self.class_prefix}{engine}"
        try:
            module = __import__(
                f"shared.clients.{self.client_type}.{engine.lower()}.{class_name}",
                fromlist=[class_name],
            )
            client_class = getattr(module, class_name)
        except (ImportError, AttributeError) as e:
            raise ValueError(f"Unsupported {self.client_type.upper()} engine specified: '{engine}'. Error: {e}")
        client = client_class(helper_config=self.helper_config)
        self.logging.debug(f"Instantiated {self.client_type.upper()} client for engine: {engine}")
        return client

    def get_client(self) -> ClientInterface:
        return self.client
