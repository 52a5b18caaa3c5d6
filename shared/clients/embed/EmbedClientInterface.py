from abc import abstractmethod
import math

from typing import Tuple
from shared.clients.ClientInterface import ClientInterface

from shared.helper.HelperConfig import HelperConfig


class EmbedClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        # model and embedding config
        self.embed_distance = helper_config.get_string_val(f"{self.get_client_type().upper()}_DISTANCE", default="Cosine")
        self.embed_model = helper_config.get_string_val(f"{self.get_client_type().upper()}_MODEL")
        self.embed_model_max_chars = helper_config.get_number_val(f"{self.get_client_type().upper()}_MODEL_MAX_CHARS", default=0) or None
        self.embed_dimension: int | None = int(helper_config.get_number_val(f"{self.get_client_type().upper()}_DIMENSION", default=0)) or None

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def is_valid_vector(self, vector: list[float] | None) -> bool:
        """
        Checks that a vector is complete: non-empty, all finite numbers and,
        once the dimension is known, exactly embed_dimension long.

        Args:
            vector (list[float] | None): The vector to check.

        Returns:
            bool: True if the vector may be stored or searched with.
        """
        if not vector:
            return False
        if self.embed_dimension is not None and len(vector) != self.embed_dimension:
            return False
        for value in vector:
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
                return False
        return True

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "embed"

    def get_dimension(self) -> int | None:
        return self.embed_dimension

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_models(self) -> str:
        """
        Returns the endpoint path for model listing requests (e.g. "/api/tags").
        """
        pass

    @abstractmethod
    def get_endpoint_embedding(self) -> str:
        """
        Returns the endpoint path for embedding requests (e.g. "/api/embed").
        """
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_embed_payload(self, texts: list[str]) -> dict:
        """Build the backend-specific request body for an embedding request.

        Args:
            texts (list[str]): The texts to embed, already cut to the model limit.

        Returns:
            dict: JSON-serialisable request body.
        """
        pass

    ##########################################
    ################# OTHER ##################
    ##########################################

    @abstractmethod
    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        """Extract embedding vectors from a raw embedding API response.

        Args:
            response_data (dict): The parsed JSON response body.

        Returns:
            list[list[float]]: Embedding vectors in the same order as the input texts.

        Raises:
            ValueError: If the response format is invalid or embeddings are empty.
        """
        pass

    def _prepare_texts(self, texts: list[str]) -> list[str]:
        if not self.embed_model_max_chars:
            return texts
        limit = int(self.embed_model_max_chars)
        return [text[:limit] for text in texts]

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_fetch_models(self):
        """Fetch the list of available embedding models from the backend."""
        return await self.do_request(method="GET", endpoint=self._get_endpoint_models(), raise_on_error=True)

    async def do_fetch_embedding_vector_size(self) -> Tuple[int, str]:
        """
        Determine the output dimension of the configured model by embedding a probe text.

        The result is cached in embed_dimension so later vectors are validated against it.

        Returns:
            Tuple[int, str]: The vector dimension and the distance metric.

        Raises:
            Exception: If the backend cannot be reached or returns no vector.
        """
        if self.embed_dimension is None:
            vectors = await self.do_embed("dimension probe")
            self.embed_dimension = len(vectors[0])
            self.logging.info("Embedding model '%s' produces %d-dimensional vectors.", self.embed_model, self.embed_dimension)
        return self.embed_dimension, self.embed_distance

    async def do_embed(self, texts: list[str] | str, timeout: float | None = None) -> list[list[float]]:
        """Send an embedding request and return the extracted vectors.

        Args:
            texts (list[str] | str): One or more texts to embed.
            timeout (float | None): Per-request timeout in seconds.

        Returns:
            list[list[float]]: Embedding vectors in the same order as the inputs.

        Raises:
            ClientRequestError: If the HTTP request fails.
            ValueError: If the response does not contain one valid vector per input.
        """
        texts = [texts] if isinstance(texts, str) else texts
        body = self.get_embed_payload(self._prepare_texts(texts))
        response = await self.do_request(
            method="POST",
            endpoint=self.get_endpoint_embedding(),
            json=body,
            raise_on_error=True,
            timeout=timeout,
        )
        vectors = self.extract_embeddings_from_response(response.json())
        if len(vectors) != len(texts):
            raise ValueError(f"Embedding backend returned {len(vectors)} vectors for {len(texts)} texts.")
        return vectors

    async def do_embed_text(self, text: str, timeout: float | None = None) -> list[float]:
        """Embed a single text and validate the vector before handing it out.

        Args:
            text (str): The text to embed.
            timeout (float | None): Per-request timeout in seconds.

        Returns:
            list[float]: A complete vector of the configured dimension.

        Raises:
            ValueError: If the vector is malformed or has the wrong dimension.
        """
        vector = (await self.do_embed([text], timeout=timeout))[0]
        if not self.is_valid_vector(vector):
            raise ValueError(
                f"Embedding backend '{self.get_engine_name()}' returned a malformed vector "
                f"(length {len(vector) if vector else 0}, expected {self.embed_dimension})."
            )
        return [float(v) for v in vector]
