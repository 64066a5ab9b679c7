from server.models.requests import QueryRequest
from server.models.responses import PassageItem, QueryResponse
from services.retrieval.ContextAssembler import ContextAssembler, InstructionPolicy
from services.retrieval.RetrievalStrategy import PASSAGE_SEPARATOR
from services.retrieval.Retriever import Retriever
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import PipelineSettings


class QueryService:
    """Handles knowledge-base queries: retrieve with fallback -> assemble prompt context."""

    def __init__(
        self,
        helper_config: HelperConfig,
        retriever: Retriever,
        assembler: ContextAssembler,
        settings: PipelineSettings,
        policy: InstructionPolicy | None = None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._retriever = retriever
        self._assembler = assembler
        self._settings = settings
        self._policy = policy or InstructionPolicy()

    async def do_query(self, request: QueryRequest, embedding_key: str | None = None) -> QueryResponse:
        """Retrieve passages for a question and build the prompt context for the language model.

        Args:
            request (QueryRequest): Query, owner_id and optional token budget.
            embedding_key (str | None): Per-call embedding API key.

        Returns:
            QueryResponse: Serving strategy, fallback reasons, passages, joined context and full prompt.
        """
        max_tokens = request.max_tokens or self._settings.max_context_tokens
        self.logging.info(
            "QueryService.do_query: query='%s', max_tokens=%d", request.query, max_tokens,
            extra={"owner_id": request.owner_id},
        )

        outcome = await self._retriever.do_retrieve(
            owner_id=request.owner_id,
            query=request.query,
            max_tokens=max_tokens,
            embedding_key=embedding_key,
        )
        prompt = self._assembler.assemble(outcome.passages, policy=self._policy, question=request.query)

        return QueryResponse(
            query=request.query,
            strategy=outcome.strategy,
            fallbacks=outcome.fallbacks,
            passages=[
                PassageItem(content=p.content, score=p.score, document_name=p.document_name)
                for p in outcome.passages
            ],
            context=PASSAGE_SEPARATOR.join(p.content for p in outcome.passages),
            prompt=prompt,
        )
