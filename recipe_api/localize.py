from typing import Optional

# Languages with a label column on the tags table.
# Keys are ISO 639-1 codes -> Tag attribute holding the label.
LABEL_COLUMNS = {
    "en": "label_en",
    "id": "label_id",
}
DEFAULT_LANG = "en"


def resolve_lang(lang: Optional[str]) -> str:
    if not lang:
        return DEFAULT_LANG
    # accept region variants like "id-ID" or "en_US"
    code = lang.strip().lower().replace("_", "-").split("-")[0]
    return code if code in LABEL_COLUMNS else DEFAULT_LANG


def tag_label(tag, lang: Optional[str] = None) -> str:
    """Return the tag label for lang, falling back to English then the key."""
    code = resolve_lang(lang)
    label = getattr(tag, LABEL_COLUMNS[code], None)
    if label:
        return label
    if code != DEFAULT_LANG and tag.label_en:
        return tag.label_en
    return tag.key
