# flake8: noqa
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))  # noqa: E402

import importlib

import pytest

from recipe_api.matcher import (
    AffiliateProduct,
    InvalidArgument,
    MatchType,
    build_search_link,
    match_ingredient,
    validate_ingredient_name,
    word_similarity,
)

TEMPLATE = "https://shop.example.com/search?q={query}"

MINYAK_GORENG = AffiliateProduct(
    id=1, canonical_name="minyak goreng", link="L1", aliases=("cooking oil",)
)

CATALOG = [
    MINYAK_GORENG,
    AffiliateProduct(id=2, canonical_name="bawang putih", link="L2", aliases=("garlic",)),
    AffiliateProduct(id=3, canonical_name="bawang merah", link="L3", aliases=("shallot", "red onion")),
    AffiliateProduct(id=4, canonical_name="kecap manis", link="L4", aliases=("sweet soy sauce",)),
]


def match(name, catalog=CATALOG, **kwargs):
    kwargs.setdefault("search_url_template", TEMPLATE)
    return match_ingredient(name, catalog, **kwargs)


def test_concrete_scenario():
    catalog = [MINYAK_GORENG]

    r = match("minyak goreng", catalog)
    assert (r.match_type, r.link) == (MatchType.EXACT, "L1")

    r = match("cooking oil", catalog)
    assert (r.match_type, r.link) == (MatchType.ALIAS, "L1")

    r = match("extra virgin minyak goreng", catalog)
    assert (r.match_type, r.link) == (MatchType.CONTAINS, "L1")

    r = match("daun ketumbar", catalog)
    assert r.match_type == MatchType.SEARCH
    assert r.link == "https://shop.example.com/search?q=daun%20ketumbar"
    assert r.product is None


@pytest.mark.parametrize("product", CATALOG, ids=lambda p: p.canonical_name)
def test_every_canonical_name_matches_exactly(product):
    for name in (product.canonical_name, product.canonical_name.upper(), product.canonical_name.title()):
        r = match(name)
        assert r.match_type == MatchType.EXACT
        assert r.product == product


@pytest.mark.parametrize(
    "product,alias",
    [(p, a) for p in CATALOG for a in p.aliases],
)
def test_every_alias_matches(product, alias):
    for name in (alias, alias.upper()):
        r = match(name)
        assert r.match_type == MatchType.ALIAS
        assert r.product == product
        assert r.link == product.link


def test_exact_beats_alias():
    catalog = [
        AffiliateProduct(id=1, canonical_name="santan", link="L1", aliases=("garlic",)),
        AffiliateProduct(id=2, canonical_name="garlic", link="L2"),
    ]
    r = match("garlic", catalog)
    assert r.match_type == MatchType.EXACT
    assert r.link == "L2"


def test_alias_overlap_resolves_to_catalog_order():
    catalog = [
        AffiliateProduct(id=1, canonical_name="cabai merah", link="L1", aliases=("chili",)),
        AffiliateProduct(id=2, canonical_name="cabai rawit", link="L2", aliases=("chili",)),
    ]
    assert match("chili", catalog).link == "L1"
    assert match("chili", list(reversed(catalog))).link == "L2"


def test_contains_prefers_longest_name():
    catalog = [
        AffiliateProduct(id=1, canonical_name="minyak", link="short"),
        AffiliateProduct(id=2, canonical_name="minyak goreng", link="long"),
    ]
    r = match("beli minyak goreng sekarang", catalog)
    assert r.match_type == MatchType.CONTAINS
    assert r.link == "long"


def test_contains_equal_length_uses_catalog_order():
    catalog = [
        AffiliateProduct(id=1, canonical_name="tahu", link="first"),
        AffiliateProduct(id=2, canonical_name="tempe", link="second"),
        AffiliateProduct(id=3, canonical_name="susu", link="third"),
    ]
    r = match("susu dan tahu goreng", catalog)
    assert r.link == "first"


def test_contains_is_one_directional():
    # ingredient must contain the product name, not the other way around
    r = match("minyak")
    assert r.match_type == MatchType.SEARCH


def test_internal_whitespace_is_not_collapsed():
    r = match("minyak  goreng")
    assert r.match_type == MatchType.SEARCH


def test_surrounding_whitespace_is_ignored():
    r = match("  Bawang Putih  ")
    assert r.match_type == MatchType.EXACT
    assert r.link == "L2"


def test_case_insensitive_and_idempotent():
    a = match("MINYAK GORENG")
    b = match("minyak goreng")
    assert a == b
    assert match("minyak goreng") == b


def test_search_link_uses_original_text():
    r = match("Daun Salam & Jeruk")
    assert r.match_type == MatchType.SEARCH
    assert r.link == "https://shop.example.com/search?q=Daun%20Salam%20%26%20Jeruk"


def test_empty_catalog_falls_back():
    r = match("garam", [])
    assert r.match_type == MatchType.SEARCH
    assert r.product is None


def test_contains_stage_disabled_in_fuzzy_strategy():
    r = match("extra virgin minyak goreng", [MINYAK_GORENG], strategy="fuzzy")
    assert r.match_type == MatchType.FUZZY
    assert r.link == "L1"


def test_fuzzy_handles_typos():
    r = match("mnyak", strategy="fuzzy")
    assert r.match_type == MatchType.FUZZY
    assert r.product == MINYAK_GORENG


def test_fuzzy_below_threshold_falls_back():
    r = match("qqqq", strategy="fuzzy")
    assert r.match_type == MatchType.SEARCH


def test_fuzzy_threshold_is_exclusive():
    catalog = [AffiliateProduct(id=1, canonical_name="abcd", link="L1")]
    score = word_similarity("abxy", "abcd")
    assert match("abxy", catalog, strategy="fuzzy", fuzzy_threshold=score).match_type == MatchType.SEARCH
    assert match("abxy", catalog, strategy="fuzzy", fuzzy_threshold=score - 0.01).match_type == MatchType.FUZZY


def test_fuzzy_picks_highest_score():
    catalog = [
        AffiliateProduct(id=1, canonical_name="bawang merah", link="merah"),
        AffiliateProduct(id=2, canonical_name="bawang putih", link="putih"),
    ]
    r = match("bawang puti", catalog, strategy="fuzzy")
    assert r.link == "putih"


def test_unknown_strategy_is_rejected():
    with pytest.raises(ValueError):
        match("garam", strategy="ml")


def test_word_similarity_scores_best_word_run():
    assert word_similarity("goreng", "minyak goreng") == 1.0
    assert word_similarity("", "minyak") == 0.0
    assert 0.4 < word_similarity("mnyak", "minyak goreng") < 1.0


def test_build_search_link():
    assert build_search_link(" nasi putih ", TEMPLATE) == "https://shop.example.com/search?q=nasi%20putih"


def test_validate_ingredient_name():
    assert validate_ingredient_name("  garam ") == "garam"
    assert validate_ingredient_name("a" * 200) == "a" * 200
    for bad in (None, "", "   ", "a" * 201):
        with pytest.raises(InvalidArgument):
            validate_ingredient_name(bad)


@pytest.mark.parametrize(
    "name,catalog_names",
    [
        ("gula", ["garam", "tepung terigu"]),
        ("telur", ["garam", "tepung terigu"]),
        ("tempe", ["garam", "tepung terigu"]),
    ],
)
def test_fuzzy_does_not_pair_unrelated_staples(name, catalog_names):
    catalog = [
        AffiliateProduct(id=i, canonical_name=n, link=f"L{i}")
        for i, n in enumerate(catalog_names, start=1)
    ]
    r = match(name, catalog, strategy="fuzzy")
    assert r.match_type == MatchType.SEARCH
    assert r.product is None


def test_word_similarity_trigram_scores():
    # "  g" is the only shared trigram: 1 / (5 + 1 - 1)
    assert word_similarity("gula", "garam") == pytest.approx(0.2)
    # "  t", " te" shared with "tepung": 2 / (6 + 2 - 2)
    assert word_similarity("telur", "tepung terigu") == pytest.approx(1 / 3)
    assert word_similarity("word", "two words") == pytest.approx(0.8)
    assert word_similarity("Minyak", "minyak goreng") == 1.0
    # punctuation separates words
    assert word_similarity("goreng", "minyak-goreng") == 1.0
    assert word_similarity("!!!", "garam") == 0.0


def test_config_defaults_come_from_matcher(monkeypatch):
    from recipe_api import config, matcher

    for var in ("AFFILIATE_SEARCH_URL_TEMPLATE", "AFFILIATE_MATCH_STRATEGY",
                "FUZZY_MATCH_THRESHOLD", "MAX_INGREDIENT_LENGTH"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr("dotenv.load_dotenv", lambda *a, **kw: False)
    importlib.reload(config)

    assert config.AFFILIATE_SEARCH_URL_TEMPLATE == matcher.DEFAULT_SEARCH_URL_TEMPLATE
    assert config.AFFILIATE_MATCH_STRATEGY == matcher.STRATEGY_CONTAINS
    assert config.FUZZY_MATCH_THRESHOLD == matcher.DEFAULT_FUZZY_THRESHOLD
    assert config.MAX_INGREDIENT_LENGTH == matcher.MAX_INGREDIENT_LENGTH
