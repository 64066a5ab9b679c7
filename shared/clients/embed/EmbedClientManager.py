from shared.helper.HelperConfig import HelperConfig
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface

class EmbedClientManager:
    """
    Resolves the embedding backend named by EMBED_ENGINE (default "openai")
    and keeps the single client instance shared by indexing and retrieval.
    """

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.client = self._initialize_client()

    def _get_engine_from_env(self) -> str:
        """
        Reads the embedding engine from ENV configuration.

        Returns:
            str: The engine name, capitalised to match the class suffix (e.g. "Openai").

        Raises:
            ValueError: If EMBED_ENGINE is set but empty.
        """
        engine = self.helper_config.get_string_val("EMBED_ENGINE", default="openai").strip()
        if not engine:
            raise ValueError("EMBED_ENGINE is empty.")
        return engine.lower().capitalize()

    def _initialize_client(self) -> EmbedClientInterface:
        """
        Imports shared.clients.embed.<engine>.EmbedClient<Engine> and instantiates it.

        Returns:
            EmbedClientInterface: The embedding client.

        Raises:
            ValueError: If no client class exists for the engine.
        """
        engine = self._get_engine_from_env()
        className = f"EmbedClient{engine}"
        try:
            module = __import__(
                f"shared.clients.embed.{engine.lower()}.{className}",
                fromlist=[className],
            )
            client_class = getattr(module, className)
        except (ImportError, AttributeError) as e:
            raise ValueError(f"Unsupported Embed engine specified: '{engine}'. Error: {e}")

        client = client_class(helper_config=self.helper_config)
        if client.requires_api_key() and not client.has_api_key():
            # per-request keys may still be supplied by callers
            self.logging.info("Embed engine '%s' has no configured API key.", client.get_engine_name())
        self.logging.debug(
            "Instantiated Embed client '%s' (model %s, %d dimensions).",
            client.get_engine_name(), client.embed_model, client.get_vector_size(),
        )
        return client

    def get_client(self) -> EmbedClientInterface:
        """
        Returns the instantiated embedding client.
        """
        return self.client
