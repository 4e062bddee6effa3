"""
Ingredient to affiliate product matching.

Resolves a free-text ingredient name against a snapshot of the affiliate
catalog. Strategies run in strict priority order and the first hit wins:

    exact     ingredient == canonical name
    alias     ingredient == one of the product aliases
    contains  canonical name is a substring of the ingredient  (strategy "contains")
    fuzzy     word similarity above a threshold                 (strategy "fuzzy")
    search    fallback link built from a search URL template

Only one of contains/fuzzy is active for a given call. All comparisons are
done on lower-cased, trimmed text. The matcher never fails: every input gets
either a product match or a search link.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple
from urllib.parse import quote

from .normalize import normalize_name

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_URL_TEMPLATE = "https://www.tokopedia.com/search?st=product&q={query}"
DEFAULT_FUZZY_THRESHOLD = 0.4
MAX_INGREDIENT_LENGTH = 200

STRATEGY_CONTAINS = "contains"
STRATEGY_FUZZY = "fuzzy"
STRATEGIES = (STRATEGY_CONTAINS, STRATEGY_FUZZY)

# words are runs of letters and digits; anything else separates them
_WORD_RE = re.compile(r"[^\W_]+")


class InvalidArgument(ValueError):
    """Raised for ingredient names that must not reach the matcher."""


class MatchType(str, Enum):
    EXACT = "exact"
    ALIAS = "alias"
    CONTAINS = "contains"
    FUZZY = "fuzzy"
    SEARCH = "search"


@dataclass(frozen=True)
class AffiliateProduct:
    """Catalog entry as seen by the matcher, independent of the ORM row."""
    id: int
    canonical_name: str
    link: str
    aliases: Tuple[str, ...] = field(default_factory=tuple)
    category: Optional[str] = None
    search_url_template: Optional[str] = None


@dataclass(frozen=True)
class MatchResult:
    link: str
    match_type: MatchType
    product: Optional[AffiliateProduct] = None


def validate_ingredient_name(name: Optional[str], max_length: int = MAX_INGREDIENT_LENGTH) -> str:
    """Check a caller-supplied ingredient name and return it trimmed.

    Raises:
        InvalidArgument: if the name is missing, blank, or longer than max_length.
    """
    if name is None:
        raise InvalidArgument("ingredient is required")
    if len(name) > max_length:
        raise InvalidArgument(f"ingredient must be at most {max_length} characters")
    trimmed = name.strip()
    if not trimmed:
        raise InvalidArgument("ingredient must not be blank")
    return trimmed


def build_search_link(ingredient_name: str, template: str = DEFAULT_SEARCH_URL_TEMPLATE) -> str:
    encoded = quote(ingredient_name.strip(), safe="")
    return template.replace("{query}", encoded)


def _word_trigrams(text: str) -> List[str]:
    """Trigrams of text in word order, each word padded as "  word "."""
    grams = []
    for word in _WORD_RE.findall(text.lower()):
        padded = f"  {word} "
        grams.extend(padded[i:i + 3] for i in range(len(padded) - 2))
    return grams


def word_similarity(query: str, target: str) -> float:
    """Trigram similarity (0-1) of query to the closest extent of target.

    Words are split on non-alphanumeric characters and padded with two
    leading blanks and one trailing blank before taking trigrams. Every
    contiguous run of target trigrams is compared with the query trigram set
    as shared / (query + run - shared), and the best run wins, so "mnyak"
    scores against the "minyak" part of "minyak goreng".
    """
    query_set = set(_word_trigrams(query))
    target_grams = _word_trigrams(target)
    if not query_set or not target_grams:
        return 0.0
    best = 0.0
    for start in range(len(target_grams)):
        # only runs that begin and end on a shared trigram can be the best
        if target_grams[start] not in query_set:
            continue
        extent = set()
        for end in range(start, len(target_grams)):
            extent.add(target_grams[end])
            if target_grams[end] not in query_set:
                continue
            shared = len(extent & query_set)
            score = shared / (len(query_set) + len(extent) - shared)
            if score > best:
                best = score
    return best


def _find_exact(needle: str, catalog: Sequence[AffiliateProduct]) -> Optional[AffiliateProduct]:
    for product in catalog:
        if normalize_name(product.canonical_name) == needle:
            return product
    return None


def _find_alias(needle: str, catalog: Sequence[AffiliateProduct]) -> Optional[AffiliateProduct]:
    for product in catalog:
        for alias in product.aliases:
            if normalize_name(alias) == needle:
                return product
    return None


def _find_contains(needle: str, catalog: Sequence[AffiliateProduct]) -> Optional[AffiliateProduct]:
    best = None
    best_len = 0
    for product in catalog:
        name = normalize_name(product.canonical_name)
        # strict > keeps the earliest product on equal length
        if name and name in needle and len(name) > best_len:
            best = product
            best_len = len(name)
    return best


def _find_fuzzy(
    needle: str, catalog: Sequence[AffiliateProduct], threshold: float
) -> Optional[AffiliateProduct]:
    best = None
    best_score = threshold
    for product in catalog:
        score = word_similarity(needle, normalize_name(product.canonical_name))
        if score > best_score:
            best = product
            best_score = score
    return best


def match_ingredient(
    ingredient_name: str,
    catalog: Sequence[AffiliateProduct],
    *,
    search_url_template: str = DEFAULT_SEARCH_URL_TEMPLATE,
    strategy: str = STRATEGY_CONTAINS,
    fuzzy_threshold: float = DEFAULT_FUZZY_THRESHOLD,
) -> MatchResult:
    """Find the affiliate product for an ingredient name.

    Args:
        ingredient_name: Free-text name, already validated by the caller.
        catalog: Snapshot of products; its order decides every tie.
        search_url_template: URL with a {query} placeholder for the fallback.
        strategy: "contains" or "fuzzy", the third stage of the pipeline.
        fuzzy_threshold: Minimum word similarity (exclusive) for a fuzzy hit.

    Returns:
        MatchResult with the product link, or a search link and no product.
    """
    if strategy not in STRATEGIES:
        raise ValueError(f"unknown match strategy: {strategy!r}")

    needle = normalize_name(ingredient_name)

    product = _find_exact(needle, catalog)
    if product is not None:
        return MatchResult(link=product.link, match_type=MatchType.EXACT, product=product)

    product = _find_alias(needle, catalog)
    if product is not None:
        return MatchResult(link=product.link, match_type=MatchType.ALIAS, product=product)

    if strategy == STRATEGY_CONTAINS:
        product = _find_contains(needle, catalog)
        if product is not None:
            return MatchResult(link=product.link, match_type=MatchType.CONTAINS, product=product)
    else:
        product = _find_fuzzy(needle, catalog, fuzzy_threshold)
        if product is not None:
            return MatchResult(link=product.link, match_type=MatchType.FUZZY, product=product)

    logger.debug("No affiliate product for %r, using search link", ingredient_name)
    return MatchResult(
        link=build_search_link(ingredient_name, search_url_template),
        match_type=MatchType.SEARCH,
    )
