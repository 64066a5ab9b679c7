from services.retrieval.RetrievalStrategy import RetrievalStrategy
from services.retrieval.TokenEstimator import TokenEstimatorInterface
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.helper.HelperArabic import normalize_arabic
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import PipelineSettings
from shared.models.document import RetrievedPassage
from shared.models.errors import ConfigurationError, RetrievalError


class SemanticRetriever(RetrievalStrategy):
    """Vector similarity search over the owner's indexed chunks."""

    def __init__(
        self,
        helper_config: HelperConfig,
        embed_client: EmbedClientInterface,
        rag_client: RAGClientInterface,
        token_estimator: TokenEstimatorInterface,
        settings: PipelineSettings,
    ):
        super().__init__(helper_config=helper_config, token_estimator=token_estimator)
        self._embed_client = embed_client
        self._rag_client = rag_client
        self._settings = settings

    def get_name(self) -> str:
        return "semantic"

    async def search_semantic(self, owner_id: str, query: str, embedding_key: str | None, limit: int) -> list[RetrievedPassage]:
        """Embed the Arabic-normalised query and search the owner's chunks.

        Args:
            owner_id (str): Owner whose chunks are searched.
            query (str): The user question.
            embedding_key (str | None): Per-call embedding API key.
            limit (int): Maximum number of passages.

        Returns:
            list[RetrievedPassage]: Passages scoring at least the similarity threshold, best first.
        """
        vector = await self._embed_client.do_embed(normalize_arabic(query), api_key=embedding_key)
        hits = await self._rag_client.do_search(
            vector=vector,
            owner_id=owner_id,
            limit=limit,
            score_threshold=self._settings.similarity_threshold,
        )
        return [
            RetrievedPassage(content=hit.payload.chunk_text, score=hit.score, document_name=hit.payload.document_name)
            for hit in hits
        ]

    async def do_retrieve(
        self,
        owner_id: str,
        query: str,
        max_tokens: int,
        embedding_key: str | None = None,
    ) -> list[RetrievedPassage]:
        if not self._embed_client.has_api_key(embedding_key):
            raise ConfigurationError("No embedding key available for semantic search.", source=self.get_name())

        try:
            indexed = await self._rag_client.do_count(self._rag_client.get_owner_filter(owner_id))
        except Exception as exc:
            raise RetrievalError(f"Vector store unavailable: {exc}", source=self.get_name()) from exc
        if indexed == 0:
            raise RetrievalError("No indexed chunks for this owner.", source=self.get_name())

        try:
            passages = await self.search_semantic(owner_id, query, embedding_key, self._settings.result_limit)
        except Exception as exc:
            raise RetrievalError(f"Semantic search failed: {exc}", source=self.get_name()) from exc

        self.logging.debug("Semantic search returned %d passage(s).", len(passages))
        return self.fit_to_budget(passages, max_tokens)
