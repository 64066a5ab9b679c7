"""Paragraph-aware chunking with character windows for oversized paragraphs."""

import re

PARAGRAPH_SEPARATOR = "\n\n"
_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")


def _window(paragraph: str, max_size: int, overlap: int) -> list[str]:
    step = max_size - overlap
    windows: list[str] = []
    start = 0
    while start < len(paragraph):
        windows.append(paragraph[start:start + max_size])
        if start + max_size >= len(paragraph):
            break
        start += step
    return windows


def chunk_text(text: str, max_size: int = 1000, overlap: int = 200) -> list[str]:
    """Split text into chunks of at most max_size characters.

    Paragraphs (blank-line delimited, stripped, empty ones skipped) are
    accumulated greedily, joined by a blank line, while the buffer stays
    within max_size. A paragraph longer than max_size flushes the buffer and
    is cut into windows of max_size characters whose starts advance by
    max_size - overlap, so neighbouring windows share overlap characters.

    Args:
        text (str): Normalised document text.
        max_size (int): Maximum chunk length in characters.
        overlap (int): Characters shared by consecutive windows of a split paragraph.

    Returns:
        list[str]: Chunks in document order ([] for blank input).

    Raises:
        ValueError: If max_size <= 0, overlap < 0 or overlap >= max_size.
    """
    if max_size <= 0:
        raise ValueError(f"max_size must be positive, got {max_size}.")
    if overlap < 0 or overlap >= max_size:
        raise ValueError(f"overlap must be in [0, max_size), got overlap={overlap}, max_size={max_size}.")
    if not text or not text.strip():
        return []

    chunks: list[str] = []
    buffer = ""
    for paragraph in _PARAGRAPH_BREAK.split(text):
        paragraph = paragraph.strip()
        if not paragraph:
            continue

        if len(paragraph) > max_size:
            if buffer:
                chunks.append(buffer)
                buffer = ""
            chunks.extend(_window(paragraph, max_size, overlap))
            continue

        if not buffer:
            buffer = paragraph
        elif len(buffer) + len(PARAGRAPH_SEPARATOR) + len(paragraph) <= max_size:
            buffer = f"{buffer}{PARAGRAPH_SEPARATOR}{paragraph}"
        else:
            chunks.append(buffer)
            buffer = paragraph

    if buffer:
        chunks.append(buffer)
    return chunks
