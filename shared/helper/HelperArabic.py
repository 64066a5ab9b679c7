"""Arabic text normalisation used for query matching.

Morphological spelling variants (Hamza-bearing Alif, Ta Marbuta, Alif
Maksura) and diacritics otherwise fragment keyword and vector matching.
"""

import re

# harakat, tanween, shadda and sukun (U+064B..U+0652) plus the superscript alif
_DIACRITICS = re.compile("[ً-ْٰ]")
_ALIF_VARIANTS = re.compile("[أإآ]")
_BARE_ALIF = "ا"
_TA_MARBUTA = "ة"
_HA = "ه"
_ALIF_MAKSURA = "ى"
_YA = "ي"


def normalize_arabic(text: str) -> str:
    """Fold Arabic spelling variants onto one canonical form.

    Strips diacritics, maps أ/إ/آ to bare ا, ة to ه and ى to ي, then trims.
    Non-Arabic characters pass through unchanged.

    Args:
        text (str): The text to normalise.

    Returns:
        str: The normalised text ("" for empty input).
    """
    if not text:
        return ""
    text = _DIACRITICS.sub("", text)
    text = _ALIF_VARIANTS.sub(_BARE_ALIF, text)
    text = text.replace(_TA_MARBUTA, _HA).replace(_ALIF_MAKSURA, _YA)
    return text.strip()
