from abc import ABC, abstractmethod

from services.retrieval.TokenEstimator import TokenEstimatorInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import RetrievedPassage

# visible boundary between passages in an assembled context
PASSAGE_SEPARATOR = "\n\n---\n\n"


class RetrievalStrategy(ABC):
    """One way of choosing context passages for a query.

    Implementations must keep the passages, joined by PASSAGE_SEPARATOR,
    within the caller's token budget.
    """

    def __init__(self, helper_config: HelperConfig, token_estimator: TokenEstimatorInterface):
        self.logging = helper_config.get_logger()
        self._token_estimator = token_estimator

    ##########################################
    ################ GETTER ##################
    ##########################################

    @abstractmethod
    def get_name(self) -> str:
        """
        Returns the strategy name reported in RetrievalOutcome (e.g. "semantic").
        """
        pass

    ##########################################
    ############### RETRIEVAL ################
    ##########################################

    @abstractmethod
    async def do_retrieve(
        self,
        owner_id: str,
        query: str,
        max_tokens: int,
        embedding_key: str | None = None,
    ) -> list[RetrievedPassage]:
        """Return the owner's passages for a query, most relevant first.

        Args:
            owner_id (str): Only this owner's content may be returned.
            query (str): The user question.
            max_tokens (int): Budget for the joined passages.
            embedding_key (str | None): Per-call embedding API key.

        Returns:
            list[RetrievedPassage]: Passages within the budget (may be empty).

        Raises:
            RetrievalError: If the strategy cannot serve the query.
            ConfigurationError: If the strategy lacks a required setting.
        """
        pass

    def fit_to_budget(self, passages: list[RetrievedPassage], max_tokens: int) -> list[RetrievedPassage]:
        """Greedily keep passages in rank order while the joined text fits max_tokens.

        Passages that do not fit are skipped and scanning continues, so smaller
        ones further down may still be taken; the budget is filled rather than
        closed at the first overflow. If not even one passage fits, the top
        passage is cut to the budget.

        Args:
            passages (list[RetrievedPassage]): Ranked passages.
            max_tokens (int): Token budget for the joined passages.

        Returns:
            list[RetrievedPassage]: The selected passages, rank order preserved.
        """
        selected: list[RetrievedPassage] = []
        joined = ""
        for passage in passages:
            candidate = f"{joined}{PASSAGE_SEPARATOR}{passage.content}" if selected else passage.content
            if self._token_estimator.estimate(candidate) <= max_tokens:
                selected.append(passage)
                joined = candidate

        if not selected and passages:
            top = passages[0]
            truncated = self._token_estimator.truncate(top.content, max_tokens)
            if truncated:
                selected.append(top.model_copy(update={"content": truncated}))
        return selected
