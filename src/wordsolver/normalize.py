"""Language-aware text normalization for words and letters."""

import re
import unicodedata

# Harakat, Quranic annotation marks and small high letters
_ARABIC_MARKS = re.compile(r"[\u064B-\u065F\u0610-\u061A\u06D6-\u06ED]")

_ARABIC_FOLDS = str.maketrans(
    {
        "إ": "ا",  # alef with hamza below
        "أ": "ا",  # alef with hamza above
        "آ": "ا",  # alef with madda
        "ى": "ي",  # alef maksura -> yeh
        "ؤ": "و",  # waw with hamza
        "ئ": "ي",  # yeh with hamza
        "ة": "ه",  # teh marbuta -> heh
    }
)


def normalize_arabic(text: str) -> str:
    """Strip diacritics and fold letter variants so that spelling differences do not matter."""
    text = unicodedata.normalize("NFC", text)
    text = _ARABIC_MARKS.sub("", text)
    return text.translate(_ARABIC_FOLDS).strip()


def normalize(text: str, lang: str) -> str:
    """Normalize a word or letter for comparison.

    Arabic gets its own folding rules; every other language is NFC-normalized and upper-cased.

    Args:
        text: The word or letter to normalize.
        lang: Language code, e.g. "en" or "ar".

    Returns:
        The normalized text.
    """
    if lang == "ar":
        return normalize_arabic(text)
    return unicodedata.normalize("NFC", text).upper()
