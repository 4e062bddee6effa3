# flake8: noqa
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))  # noqa: E402

from recipe_api import models
from recipe_api.localize import resolve_lang, tag_label


def make_tag(**kwargs):
    kwargs.setdefault("key", "halal")
    kwargs.setdefault("type", "diet")
    return models.Tag(**kwargs)


def test_resolve_lang_variants():
    assert resolve_lang(None) == "en"
    assert resolve_lang("") == "en"
    assert resolve_lang("id") == "id"
    assert resolve_lang("ID-id") == "id"
    assert resolve_lang("en_US") == "en"
    # unsupported languages fall back to English
    assert resolve_lang("pl") == "en"


def test_tag_label_indonesian():
    tag = make_tag(label_en="Halal food", label_id="Makanan halal")
    assert tag_label(tag, "id") == "Makanan halal"
    assert tag_label(tag, "en") == "Halal food"
    assert tag_label(tag) == "Halal food"


def test_tag_label_falls_back_to_english_then_key():
    assert tag_label(make_tag(label_en="Halal food"), "id") == "Halal food"
    assert tag_label(make_tag(), "id") == "halal"
    assert tag_label(make_tag(label_id="Makanan halal"), "en") == "halal"
