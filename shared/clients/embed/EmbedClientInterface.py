from abc import abstractmethod

from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig


class EmbedClientInterface(ClientInterface):
    """Embedding API client: one text in, one vector out.

    The API key may come from configuration or per call (a user's own key);
    the per-call key always wins.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        # model and embedding config
        self.embed_distance = helper_config.get_string_val(f"{self.get_client_type().upper()}_DISTANCE", default="Cosine")
        self.embed_model = helper_config.get_string_val(f"{self.get_client_type().upper()}_MODEL", default=self._get_default_model())
        self.embed_dimensions = int(helper_config.get_number_val(f"{self.get_client_type().upper()}_DIMENSIONS", default=1536))
        self._api_key: str = ""

    ##########################################
    ############### CHECKER ##################
    ##########################################

    @abstractmethod
    def requires_api_key(self) -> bool:
        """
        Returns True if the backend refuses requests without an API key.
        """
        pass

    def has_api_key(self, api_key: str | None = None) -> bool:
        """
        Returns True if an embedding request can be authorised with the given
        per-call key or the configured one (or if the backend needs none).
        """
        return not self.requires_api_key() or bool(api_key or self._api_key)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "embed"

    @abstractmethod
    def _get_default_model(self) -> str:
        """
        Returns the model used when EMBED_MODEL is not set (e.g. "text-embedding-3-small").
        """
        pass

    def get_vector_size(self) -> int:
        """
        Returns the dimensionality of the vectors produced by the configured model.
        """
        return self.embed_dimensions

    ################ AUTH ##################
    @abstractmethod
    def _build_auth_header(self, api_key: str) -> dict:
        """
        Builds the backend-specific auth header for the given key.

        Args:
            api_key (str): The key to authorise with.

        Returns:
            dict: Header dict, empty if the key is empty.
        """
        pass

    def _get_auth_header(self) -> dict:
        return self._build_auth_header(self._api_key) if self._api_key else {}

    ################ ENDPOINTS ##################
    @abstractmethod
    def get_endpoint_embedding(self) -> str:
        """
        Returns the endpoint path for embedding requests (e.g. "/v1/embeddings").
        """
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_embed_payload(self, texts: list[str]) -> dict:
        """Build the backend-specific request body for an embedding request.

        Args:
            texts (list[str]): The texts to embed.

        Returns:
            dict: JSON-serialisable request body (e.g. {"model": "...", "input": [...]}).
        """
        pass

    ##########################################
    ################# OTHER ##################
    ##########################################

    @abstractmethod
    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        """Extract embedding vectors from a raw embedding API response.

        Response format differs by backend:
        - Ollama /api/embed: {"embeddings": [[...], [...]]}  (already ordered)
        - OpenAI: {"data": [{"embedding": [...], "index": 0}]}  (needs sorting)

        Args:
            response_data (dict): The parsed JSON response body.

        Returns:
            list[list[float]]: Embedding vectors in the same order as the input texts.

        Raises:
            ValueError: If the response format is invalid or embeddings are empty.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_embed(self, text: str, api_key: str | None = None) -> list[float]:
        """Embed a single text and return its vector.

        Args:
            text (str): The text to embed.
            api_key (str | None): Per-call key overriding the configured one.

        Returns:
            list[float]: The embedding vector.

        Raises:
            Exception: If the HTTP request fails (status != 200).
            ValueError: If the response holds no vector or its length differs
                from the configured dimensionality.
        """
        headers = self._build_auth_header(api_key) if api_key else None
        response = await self.do_request(
            method="POST",
            endpoint=self.get_endpoint_embedding(),
            json=self.get_embed_payload([text]),
            additional_headers=headers,
        )
        if response.status_code != 200:
            self.logging.error(
                "Embedding request failed: status %d, body: %s",
                response.status_code,
                response.text[:200],
            )
            raise Exception("Embedding request failed with status %d." % response.status_code)

        vector = self.extract_embeddings_from_response(response.json())[0]
        if len(vector) != self.embed_dimensions:
            raise ValueError(
                f"Embedding model '{self.embed_model}' returned {len(vector)} dimensions, expected {self.embed_dimensions}."
            )
        return vector
