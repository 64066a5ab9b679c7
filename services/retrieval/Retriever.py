from services.retrieval.RetrievalStrategy import RetrievalStrategy
from shared.helper.HelperConfig import HelperConfig
from shared.models.errors import ConfigurationError, RetrievalError
from shared.models.reports import RetrievalOutcome


class Retriever:
    """Runs retrieval strategies in a fixed fallback order.

    A strategy that raises RetrievalError or ConfigurationError, or returns
    no passages, hands the query to the next one. Any other exception
    propagates.
    """

    def __init__(self, helper_config: HelperConfig, strategies: list[RetrievalStrategy]):
        if not strategies:
            raise ValueError("Retriever needs at least one strategy.")
        self.logging = helper_config.get_logger()
        self._strategies = list(strategies)

    def get_strategy_names(self) -> list[str]:
        return [strategy.get_name() for strategy in self._strategies]

    async def do_retrieve(
        self,
        owner_id: str,
        query: str,
        max_tokens: int,
        embedding_key: str | None = None,
    ) -> RetrievalOutcome:
        """Retrieve passages for a query.

        Args:
            owner_id (str): Only this owner's content is searched.
            query (str): The user question.
            max_tokens (int): Token budget for the joined passages.
            embedding_key (str | None): Per-call embedding API key.

        Returns:
            RetrievalOutcome: Passages of the first strategy that produced any,
            or strategy "none" with every fallback reason.

        Raises:
            ValueError: If owner_id is empty or max_tokens is not positive.
        """
        if not owner_id:
            raise ValueError("owner_id is required for retrieval.")
        if max_tokens <= 0:
            raise ValueError(f"max_tokens must be positive, got {max_tokens}.")

        fallbacks: list[str] = []
        for strategy in self._strategies:
            name = strategy.get_name()
            try:
                passages = await strategy.do_retrieve(owner_id, query, max_tokens, embedding_key=embedding_key)
            except (RetrievalError, ConfigurationError) as exc:
                self.logging.warning("Retrieval strategy '%s' unavailable: %s", name, exc, extra={"owner_id": owner_id})
                fallbacks.append(f"{name}: {exc}")
                continue
            if not passages:
                self.logging.info("Retrieval strategy '%s' found nothing.", name, extra={"owner_id": owner_id})
                fallbacks.append(f"{name}: no results")
                continue
            self.logging.info(
                "Retrieved %d passage(s) via '%s'.", len(passages), name, extra={"owner_id": owner_id},
            )
            return RetrievalOutcome(strategy=name, passages=passages, fallbacks=fallbacks)

        return RetrievalOutcome(strategy="none", passages=[], fallbacks=fallbacks)
