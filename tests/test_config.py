import logging

import pydantic
import pytest

from shared.logging.logging_setup import ColorLogger, CustomFormatter, OwnerContextFilter
from shared.models.config import PipelineSettings
from tests.fakes import make_config


########## HelperConfig ##########

def test_string_values(monkeypatch):
    config = make_config(monkeypatch, RAG_QDRANT_COLLECTION="  kb  ", EMPTY_VALUE="")

    assert config.get_string_val("rag_qdrant_collection") == "kb"
    assert config.get_string_val("EMPTY_VALUE", default="fallback") == "fallback"
    with pytest.raises(ValueError, match="EMPTY_VALUE"):
        config.get_string_val("EMPTY_VALUE")


def test_number_values(monkeypatch):
    config = make_config(monkeypatch, KB_RESULT_LIMIT="12", KB_SIMILARITY_THRESHOLD="0.5", BROKEN="abc")

    assert config.get_number_val("KB_RESULT_LIMIT") == 12
    assert isinstance(config.get_number_val("KB_RESULT_LIMIT"), int)
    assert config.get_number_val("KB_SIMILARITY_THRESHOLD") == 0.5
    with pytest.raises(ValueError, match="not a valid number"):
        config.get_number_val("BROKEN")


def test_bool_and_list_values(monkeypatch):
    config = make_config(monkeypatch, FLAG="yes", LANGS="[ara, eng]", BAD_LIST="ara,eng")

    assert config.get_bool_val("FLAG") is True
    assert config.get_bool_val("MISSING_FLAG", default=False) is False
    assert config.get_list_val("LANGS") == ["ara", "eng"]
    with pytest.raises(ValueError):
        config.get_list_val("BAD_LIST")


########## PipelineSettings ##########

def test_settings_defaults():
    settings = PipelineSettings()

    assert (settings.max_chunk_size, settings.chunk_overlap) == (1000, 200)
    assert settings.max_context_tokens == 6000
    assert settings.similarity_threshold == 0.35
    assert (settings.max_pdf_pages, settings.max_ocr_pages) == (50, 10)
    assert (settings.embed_batch_size, settings.upsert_batch_size) == (5, 20)


def test_settings_from_environment(monkeypatch):
    config = make_config(monkeypatch, KB_MAX_CHUNK_SIZE="500", KB_CHUNK_OVERLAP="50", KB_SIMILARITY_THRESHOLD="0.5")

    settings = PipelineSettings.from_config(config)

    assert (settings.max_chunk_size, settings.chunk_overlap) == (500, 50)
    assert settings.similarity_threshold == 0.5
    assert settings.result_limit == 8


@pytest.mark.parametrize("overlap,size", [(200, 200), (300, 200)])
def test_overlap_must_be_smaller_than_chunk_size(overlap, size):
    with pytest.raises(pydantic.ValidationError, match="chunk_overlap"):
        PipelineSettings(max_chunk_size=size, chunk_overlap=overlap)


def test_non_positive_chunk_size_is_rejected():
    with pytest.raises(pydantic.ValidationError):
        PipelineSettings(max_chunk_size=0, chunk_overlap=0)


########## logging ##########

def test_records_without_owner_get_placeholder():
    record = logging.LogRecord("kb", logging.INFO, __file__, 1, "Indexed %d chunk(s)", (3,), None)

    assert OwnerContextFilter().filter(record)
    formatted = CustomFormatter("UTC", fmt="[owner=%(owner_id)s] %(message)s").format(record)

    assert formatted == "[owner=-] Indexed 3 chunk(s)"


def test_warnings_are_prefixed():
    record = logging.LogRecord("kb", logging.WARNING, __file__, 1, "OCR skipped", (), None)
    record.owner_id = "owner-a"

    formatted = CustomFormatter("UTC", fmt="[owner=%(owner_id)s] %(message)s").format(record)

    assert formatted == "[owner=owner-a] ⚠️ OCR skipped"


def test_color_logger_passes_color_as_extra(caplog):
    logger = ColorLogger(logging.getLogger("knowledge_base.tests.color"))

    with caplog.at_level(logging.INFO, logger="knowledge_base.tests.color"):
        logger.info("Indexed %s", "faq.txt", color="green", extra={"owner_id": "owner-a"})

    record = caplog.records[-1]
    assert record.getMessage() == "Indexed faq.txt"
    assert (record.color, record.owner_id) == ("green", "owner-a")


def test_typed_values_dispatch_on_type(monkeypatch):
    config = make_config(monkeypatch, RAG_QDRANT_VECTOR_SIZE="768")

    assert config.get_typed_val("RAG_QDRANT_VECTOR_SIZE", val_type="number") == 768
    assert config.get_typed_val("RAG_QDRANT_VECTOR_SIZE") == "768"
    with pytest.raises(ValueError, match="Unsupported"):
        config.get_typed_val("RAG_QDRANT_VECTOR_SIZE", val_type="json")
