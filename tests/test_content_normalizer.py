import pytest

from services.extraction.ContentNormalizer import normalize


def test_collapses_horizontal_whitespace_but_keeps_newlines():
    assert normalize("a  \t b\nc   d") == "a b\nc d"


def test_caps_blank_lines_at_one():
    assert normalize("a\n\n\n\n\nb") == "a\n\nb"


def test_whitespace_only_lines_count_as_blank():
    assert normalize("a\n \n\t\n  b") == "a\n\nb"


def test_unifies_line_endings():
    assert normalize("a\r\nb\rc") == "a\nb\nc"


def test_breaks_lines_after_sentence_punctuation():
    text = "First sentence. Second one! Third? رابع؟ خامس"
    assert normalize(text) == "First sentence.\nSecond one!\nThird?\nرابع؟\nخامس"


def test_leaves_decimals_and_trailing_punctuation_alone():
    assert normalize("Total: 3.5 kg.") == "Total: 3.5 kg."


def test_table_rows_are_not_split():
    row = "| Note. See below | 12 |"
    assert normalize(row) == row


def test_trims_surrounding_whitespace():
    assert normalize("\n\n   hello  \n\n") == "hello"


def test_empty_input():
    assert normalize("") == ""


@pytest.mark.parametrize(
    "text",
    [
        "",
        "plain",
        "a.  b.   c",
        "x\n\n\n\ny",
        "  | a. b |\n\n\n| c! d |  ",
        "end. | next. row",
        "سؤال؟   جواب.\t\tتمت",
        "mixed \r\n\r\n\r\n line endings.  Yes!",
        "\t\n \n trailing. \n",
    ],
)
def test_normalize_is_idempotent(text):
    once = normalize(text)
    assert normalize(once) == once
