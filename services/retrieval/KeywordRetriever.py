"""Keyword-overlap context selection over the owner's raw documents.

Used when no vector index can serve the query. Relevance ranking replaces
document order once the documents exceed the budget.
"""

import re

from services.retrieval.RetrievalStrategy import PASSAGE_SEPARATOR, RetrievalStrategy
from services.retrieval.TokenEstimator import TokenEstimatorInterface
from shared.helper.HelperArabic import normalize_arabic
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import RetrievedPassage, UploadedDocument
from shared.store.DocumentStoreInterface import DocumentStoreInterface

_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
_WORD = re.compile(r"\w+")
MIN_KEYWORD_LENGTH = 3


def extract_keywords(query: str) -> list[str]:
    """Lower-cased, Arabic-normalised query words longer than two characters, deduplicated in order."""
    words = _WORD.findall(normalize_arabic(query.lower()))
    return list(dict.fromkeys(word for word in words if len(word) >= MIN_KEYWORD_LENGTH))


def score_paragraph(paragraph: str, keywords: list[str]) -> int:
    """Number of keywords contained in the paragraph (substring match on normalised text)."""
    haystack = normalize_arabic(paragraph.lower())
    return sum(1 for keyword in keywords if keyword in haystack)


class KeywordRetriever(RetrievalStrategy):
    def __init__(
        self,
        helper_config: HelperConfig,
        document_store: DocumentStoreInterface,
        token_estimator: TokenEstimatorInterface,
    ):
        super().__init__(helper_config=helper_config, token_estimator=token_estimator)
        self._document_store = document_store

    def get_name(self) -> str:
        return "keyword"

    def select_passages(self, documents: list[UploadedDocument], query: str, max_tokens: int) -> list[RetrievedPassage]:
        """Pick passages from documents for a query within max_tokens.

        All documents are rendered as ``[name]\\ncontent`` blocks. If they fit
        the budget they are returned verbatim as a single passage. Otherwise
        every paragraph is scored by the number of query keywords it contains,
        paragraphs are stably sorted by descending score and greedily taken
        while the budget holds.

        Args:
            documents (list[UploadedDocument]): The owner's documents.
            query (str): The user question.
            max_tokens (int): Token budget.

        Returns:
            list[RetrievedPassage]: Selected passages, best first.
        """
        blocks = [(doc.name, f"[{doc.name}]\n{doc.raw_content}") for doc in documents]
        full_text = "\n\n".join(block for _, block in blocks)
        if not full_text.strip():
            return []
        if self._token_estimator.estimate(full_text) <= max_tokens:
            return [RetrievedPassage(content=full_text, score=1.0)]

        keywords = extract_keywords(query)
        paragraphs = [
            RetrievedPassage(content=paragraph, score=score_paragraph(paragraph, keywords), document_name=name)
            for name, block in blocks
            for paragraph in (p.strip() for p in _PARAGRAPH_BREAK.split(block))
            if paragraph
        ]
        # sorted() is stable: equal scores keep document order
        ranked = sorted(paragraphs, key=lambda p: p.score, reverse=True)
        self.logging.debug(
            "Keyword selection: %d paragraph(s), %d keyword(s), best score %s.",
            len(ranked), len(keywords), ranked[0].score if ranked else 0,
        )
        return self.fit_to_budget(ranked, max_tokens)

    def build_context(self, documents: list[UploadedDocument], query: str, max_tokens: int) -> str:
        """Select passages and join them with the passage separator.

        Returns:
            str: Context text whose estimated token count is at most max_tokens.
        """
        return PASSAGE_SEPARATOR.join(p.content for p in self.select_passages(documents, query, max_tokens))

    async def do_retrieve(
        self,
        owner_id: str,
        query: str,
        max_tokens: int,
        embedding_key: str | None = None,
    ) -> list[RetrievedPassage]:
        documents = await self._document_store.do_list(owner_id)
        # oldest first, matching upload order
        documents = sorted(documents, key=lambda doc: doc.created)
        return self.select_passages(documents, query, max_tokens)
