# Case folding only: no stemming, no synonym map, no whitespace collapsing.
from typing import Iterable, List, Optional


def normalize_name(s: Optional[str]) -> str:
    if not s:
        return ""
    return s.strip().lower()


def clean_aliases(aliases: Optional[Iterable[str]]) -> List[str]:
    """Return aliases stripped of surrounding whitespace, blanks dropped.

    Order is preserved because alias matching resolves in list order.
    """
    if not aliases:
        return []
    return [a.strip() for a in aliases if a and a.strip()]


def split_aliases(raw: Optional[str], sep: str = "|") -> List[str]:
    if not raw or not raw.strip():
        return []
    return clean_aliases(raw.split(sep))
