"""Title normalization shared by the diff and the enrichment join."""

import re
import unicodedata
from typing import Optional

_INVISIBLE = re.compile(r'[\u200b-\u200f\u2028-\u202f\u2060\ufeff\u00ad]')


def _strip_marks(text: str) -> str:
    decomposed = unicodedata.normalize('NFKD', text)
    return ''.join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_title(title: Optional[str]) -> str:
    """
    Normalize a trend title into a comparable key.

    Rules:
    - Remove zero-width and invisible Unicode characters
    - Decompose (NFKD) and drop combining marks, so accents don't matter
    - Case-fold
    - Strip leading/trailing whitespace
    - Collapse multiple spaces to single space

    ``None`` and empty input give an empty string. The result is stable
    under a second pass.
    """
    if not title:
        return ""

    title = _INVISIBLE.sub('', str(title))
    title = _strip_marks(title)

    # Case folding can produce new combining marks (e.g. "İ"), strip again
    title = _strip_marks(title.casefold())

    return ' '.join(title.split())
