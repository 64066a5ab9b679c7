import pytest

from services.indexing.IndexingService import IndexingService
from services.retrieval.KeywordRetriever import KeywordRetriever, extract_keywords, score_paragraph
from services.retrieval.RetrievalStrategy import PASSAGE_SEPARATOR
from services.retrieval.Retriever import Retriever
from services.retrieval.SemanticRetriever import SemanticRetriever
from services.retrieval.TokenEstimator import CharTokenEstimator
from shared.models.config import PipelineSettings
from shared.models.document import RetrievedPassage, UploadedDocument, compute_content_hash
from shared.models.errors import ConfigurationError, RetrievalError
from shared.store.memory.DocumentStoreMemory import DocumentStoreMemory
from tests.fakes import FakeEmbedClient, FakeRAGClient, make_config

ESTIMATOR = CharTokenEstimator()


def document(owner_id: str, name: str, content: str) -> UploadedDocument:
    return UploadedDocument(owner_id=owner_id, name=name, raw_content=content, content_hash=compute_content_hash(content))


@pytest.fixture
def config():
    return make_config()


@pytest.fixture
def store(config):
    return DocumentStoreMemory(helper_config=config)


@pytest.fixture
def keyword(config, store):
    return KeywordRetriever(helper_config=config, document_store=store, token_estimator=ESTIMATOR)


@pytest.fixture
def stack(config, store):
    embed = FakeEmbedClient(helper_config=config)
    rag = FakeRAGClient(helper_config=config)
    settings = PipelineSettings(max_chunk_size=200, chunk_overlap=20, similarity_threshold=0.0, result_limit=5)
    indexer = IndexingService(helper_config=config, embed_client=embed, rag_client=rag, settings=settings)
    semantic = SemanticRetriever(
        helper_config=config, embed_client=embed, rag_client=rag, token_estimator=ESTIMATOR, settings=settings,
    )
    keyword = KeywordRetriever(helper_config=config, document_store=store, token_estimator=ESTIMATOR)
    retriever = Retriever(helper_config=config, strategies=[semantic, keyword])
    return {"embed": embed, "rag": rag, "indexer": indexer, "semantic": semantic, "retriever": retriever}


########## token estimation ##########

def test_char_token_estimate_rounds_up():
    assert ESTIMATOR.estimate("") == 0
    assert ESTIMATOR.estimate("abcd") == 1
    assert ESTIMATOR.estimate("abcde") == 2
    assert ESTIMATOR.truncate("abcdefghij", 2) == "abcdefgh"


########## keyword strategy ##########

def test_small_documents_are_returned_verbatim(keyword):
    docs = [document("a", "a.txt", "hello"), document("a", "b.txt", "world")]
    assert keyword.build_context(docs, "anything", max_tokens=100) == "[a.txt]\nhello\n\n[b.txt]\nworld"


def test_oversized_single_paragraph_is_cut_to_budget(keyword):
    context = keyword.build_context([document("a", "a.txt", "A" * 50000)], "foo", max_tokens=100)
    assert 0 < ESTIMATOR.estimate(context) <= 100


@pytest.mark.parametrize("max_tokens", [1, 5, 20, 50, 120, 400])
def test_context_never_exceeds_budget(keyword, max_tokens):
    content = "\n\n".join(f"Paragraph {i} about shipping and refunds " + "z" * (i * 7) for i in range(40))
    context = keyword.build_context([document("a", "policy.txt", content)], "shipping refunds", max_tokens)
    assert ESTIMATOR.estimate(context) <= max_tokens


def test_paragraphs_are_ranked_by_keyword_hits(keyword):
    content = "\n\n".join([
        "Opening hours are from nine to five.",
        "Shipping takes three days. Refunds take a week.",
        "Our refunds policy is generous.",
        "Filler paragraph " + "x" * 200,
    ])
    passages = keyword.select_passages([document("a", "faq.txt", content)], "shipping refunds", max_tokens=30)

    assert passages[0].content == "Shipping takes three days. Refunds take a week."
    assert passages[0].score == 2
    assert passages[0].document_name == "faq.txt"
    assert "Opening hours are from nine to five." not in [p.content for p in passages[:2]]


def test_keywords_are_normalised_and_short_words_dropped():
    assert extract_keywords("Is the Shipping FREE? إحمد") == ["the", "shipping", "free", "احمد"]
    assert score_paragraph("سجل أحمد في المدرسة", extract_keywords("مدرسة احمد")) == 2


def test_fit_to_budget_skips_passages_that_do_not_fit(keyword):
    passages = [RetrievedPassage(content="x" * 100, score=3), RetrievedPassage(content="short", score=1)]
    assert [p.content for p in keyword.fit_to_budget(passages, max_tokens=10)] == ["short"]


def test_fit_to_budget_keeps_scanning_past_an_oversized_passage(keyword):
    passages = [
        RetrievedPassage(content="a" * 8, score=3),
        RetrievedPassage(content="x" * 100, score=2),
        RetrievedPassage(content="b" * 8, score=1),
    ]
    assert [p.content for p in keyword.fit_to_budget(passages, max_tokens=6)] == ["a" * 8, "b" * 8]


def test_fit_to_budget_counts_the_separator(keyword):
    passages = [RetrievedPassage(content="a" * 8), RetrievedPassage(content="b" * 8)]
    # 8 + 7 + 8 chars = 23 chars = 6 tokens
    assert len(keyword.fit_to_budget(passages, max_tokens=5)) == 1
    assert len(keyword.fit_to_budget(passages, max_tokens=6)) == 2
    assert len(PASSAGE_SEPARATOR) == 7


async def test_keyword_retrieval_reads_only_the_owners_documents(keyword, store):
    await store.do_save(document("owner-a", "a.txt", "Alpha refund rules"))
    await store.do_save(document("owner-b", "b.txt", "Beta refund rules"))

    passages = await keyword.do_retrieve("owner-a", "refund", max_tokens=500)

    assert len(passages) == 1
    assert "Alpha" in passages[0].content
    assert "Beta" not in passages[0].content


########## semantic strategy ##########

async def test_semantic_search_requires_a_key(stack):
    with pytest.raises(ConfigurationError):
        await stack["semantic"].do_retrieve("owner-a", "question", max_tokens=100)


async def test_semantic_search_requires_an_index(stack):
    with pytest.raises(RetrievalError):
        await stack["semantic"].do_retrieve("owner-a", "question", max_tokens=100, embedding_key="k")


async def test_semantic_search_wraps_backend_failures(stack):
    await stack["indexer"].do_index("owner-a", "faq.txt", "some indexed text", embedding_key="k")
    stack["rag"].unavailable = True
    with pytest.raises(RetrievalError):
        await stack["semantic"].do_retrieve("owner-a", "question", max_tokens=100, embedding_key="k")


async def test_semantic_search_is_owner_scoped(stack):
    content = "Delivery is free for orders above 200 SAR."
    await stack["indexer"].do_index("owner-a", "a.txt", content, embedding_key="k")
    await stack["indexer"].do_index("owner-b", "b.txt", content, embedding_key="k")

    passages = await stack["semantic"].do_retrieve("owner-a", content, max_tokens=100, embedding_key="k")

    assert [p.document_name for p in passages] == ["a.txt"]
    assert stack["rag"].search_calls[-1] == {"owner_id": "owner-a", "limit": 5, "score_threshold": 0.0}


async def test_arabic_variants_return_identical_results(stack):
    await stack["indexer"].do_index("owner-a", "ar.txt", "أحمد يعمل في المدرسة\n\nمواعيد العمل من التاسعة", embedding_key="k")

    results = [
        await stack["semantic"].search_semantic("owner-a", query, "k", limit=5)
        for query in ("أحمد", "احمد", "إحمد", "أَحْمَد")
    ]

    assert all(result == results[0] for result in results)
    assert {text for text, _ in stack["embed"].calls[-4:]} == {"احمد"}


########## fallback ##########

async def test_semantic_strategy_serves_when_available(stack):
    await stack["indexer"].do_index("owner-a", "faq.txt", "Returns within 14 days.", embedding_key="k")

    outcome = await stack["retriever"].do_retrieve("owner-a", "returns", max_tokens=100, embedding_key="k")

    assert outcome.strategy == "semantic"
    assert outcome.fallbacks == []


async def test_falls_back_to_keywords_without_key(stack, store):
    await store.do_save(document("owner-a", "faq.txt", "Returns within 14 days."))

    outcome = await stack["retriever"].do_retrieve("owner-a", "returns", max_tokens=100)

    assert outcome.strategy == "keyword"
    assert outcome.fallbacks[0].startswith("semantic:")
    assert outcome.passages[0].content == "[faq.txt]\nReturns within 14 days."


async def test_falls_back_to_keywords_when_vector_store_is_down(stack, store):
    await store.do_save(document("owner-a", "faq.txt", "Returns within 14 days."))
    stack["rag"].unavailable = True

    outcome = await stack["retriever"].do_retrieve("owner-a", "returns", max_tokens=100, embedding_key="k")

    assert outcome.strategy == "keyword"


async def test_no_strategy_succeeds(stack):
    outcome = await stack["retriever"].do_retrieve("owner-a", "returns", max_tokens=100)

    assert outcome.strategy == "none"
    assert outcome.passages == []
    assert [reason.split(":")[0] for reason in outcome.fallbacks] == ["semantic", "keyword"]


async def test_retriever_rejects_invalid_arguments(stack):
    with pytest.raises(ValueError):
        await stack["retriever"].do_retrieve("owner-a", "q", max_tokens=0)
    with pytest.raises(ValueError):
        await stack["retriever"].do_retrieve("", "q", max_tokens=10)
