"""Whitespace and sentence-break normalisation applied to every extractor output.

normalize() is pure and idempotent: normalize(normalize(s)) == normalize(s).
"""

import re

_HORIZONTAL_WS = re.compile(r"[ \t\f\v\u00a0\u2000-\u200a\u202f\u3000]+")
_SPACES_AROUND_NEWLINE = re.compile(r" *\n *")
_EXCESS_NEWLINES = re.compile(r"\n{3,}")
# sentence terminator followed by spaces and more text on the same line
_SENTENCE_BREAK = re.compile(r"([.!?؟]) +(?=\S)")


def _break_sentences(line: str) -> str:
    # pipe-table rows keep their cells on one line
    if line.startswith("|"):
        return line
    return _SENTENCE_BREAK.sub(r"\1\n", line)


def normalize(text: str) -> str:
    """Normalise extracted text.

    Steps, in order: unify line endings to ``\\n``; collapse runs of
    horizontal whitespace to one space and drop spaces around newlines
    (newlines themselves are kept); cap 3+ consecutive newlines to exactly
    two; break lines after ``.``, ``!``, ``?`` and ``؟`` followed by
    whitespace and more text (pipe-table rows excepted); trim.

    Args:
        text (str): Raw extractor output.

    Returns:
        str: The normalised text.
    """
    if not text:
        return ""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = _HORIZONTAL_WS.sub(" ", text)
    text = _SPACES_AROUND_NEWLINE.sub("\n", text)
    text = _EXCESS_NEWLINES.sub("\n\n", text)
    text = "\n".join(_break_sentences(line) for line in text.split("\n"))
    return text.strip()
