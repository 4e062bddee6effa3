"""
CSV import and export for tags, recipes and affiliate products.

Each import validates the whole file first and collects every problem as a
RowError, then replaces the table contents in a single transaction. Row
numbers are 1-based and count the header, so the first data row is row 2.

File layouts (header row required):

    tags.csv        key,type,label_en,label_id
    recipes.csv     name,description,cooking_time_minutes,source,allergies,
                    ingredients,steps,images,tags
    affiliates.csv  canonical_name,link,category,aliases,partner,
                    search_url_template

Recipe list columns hold JSON arrays; `tags` is a comma-separated list of tag
keys and affiliate `aliases` are pipe-delimited.
"""

import csv
import io
import json
import logging
from dataclasses import dataclass
from typing import Dict, List, Sequence

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from . import crud, models, schemas
from .normalize import clean_aliases, split_aliases

logger = logging.getLogger(__name__)

TAG_FIELDS = ["key", "type", "label_en", "label_id"]
RECIPE_FIELDS = [
    "name", "description", "cooking_time_minutes", "source", "allergies",
    "ingredients", "steps", "images", "tags",
]
AFFILIATE_FIELDS = [
    "canonical_name", "link", "category", "aliases", "partner", "search_url_template",
]

DEFAULT_PARTNER = "tokopedia"


@dataclass
class RowError:
    row: int
    field: str
    message: str

    def __str__(self):
        return f"Row {self.row}, {self.field}: {self.message}"


class CsvValidationError(Exception):
    def __init__(self, errors: List[RowError]):
        super().__init__("Validation failed")
        self.errors = errors

    @property
    def details(self) -> List[str]:
        return [str(e) for e in self.errors]


def format_validation_errors(errors: Sequence[RowError]) -> str:
    return "\n".join(f"  {e}" for e in errors)


def _has_values(row: Dict[str, str]) -> bool:
    # rows of only commas/whitespace are skipped like blank lines
    return any(isinstance(v, str) and v.strip() for v in row.values())


def parse_csv(text: str, required: Sequence[str]) -> List[Dict[str, str]]:
    """Parse CSV text with a header row into a list of dicts.

    Raises:
        CsvValidationError: on malformed CSV or missing required columns.
    """
    text = text.lstrip("\ufeff")
    reader = csv.DictReader(io.StringIO(text))
    try:
        rows = [r for r in reader if _has_values(r)]
    except csv.Error as e:
        raise CsvValidationError([RowError(reader.line_num, "", f"CSV parse error: {e}")])

    header = reader.fieldnames or []
    missing = [f for f in required if f not in header]
    if missing:
        raise CsvValidationError(
            [RowError(1, f, "missing column") for f in missing]
        )
    return rows


def _val(row: Dict[str, str], key: str) -> str:
    return (row.get(key) or "").strip()


def _or_none(value: str):
    return value or None


# ── Validation ──

def validate_tag_rows(rows: List[Dict[str, str]]) -> List[RowError]:
    errors = []
    keys = set()
    for i, row in enumerate(rows):
        row_num = i + 2
        key = _val(row, "key")
        if not key:
            errors.append(RowError(row_num, "key", "key is required"))
        elif key in keys:
            errors.append(RowError(row_num, "key", f'duplicate tag key: "{key}"'))
        else:
            keys.add(key)
        if not _val(row, "type"):
            errors.append(RowError(row_num, "type", "type is required"))
    return errors


def _parse_items(raw: str, model) -> list:
    """Parse a JSON array column into strings or model instances.

    Raises:
        ValueError: if the text is not a JSON array of strings/objects.
    """
    if not raw:
        return []
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        raise ValueError("invalid JSON")
    if not isinstance(parsed, list):
        raise ValueError("must be a JSON array")
    items = []
    for idx, item in enumerate(parsed):
        if isinstance(item, str):
            items.append(item)
            continue
        try:
            items.append(model.model_validate(item))
        except PydanticValidationError:
            raise ValueError(f"invalid item at index {idx}")
    return items


RECIPE_LIST_COLUMNS = {
    "ingredients": schemas.IngredientIn,
    "steps": schemas.StepIn,
    "images": schemas.ImageIn,
}


def split_tag_keys(raw: str) -> List[str]:
    return [k.strip() for k in (raw or "").split(",") if k.strip()]


def validate_recipe_rows(rows: List[Dict[str, str]]) -> List[RowError]:
    errors = []
    names = set()
    for i, row in enumerate(rows):
        row_num = i + 2
        name = _val(row, "name")
        if not name:
            errors.append(RowError(row_num, "name", "name is required"))
        elif len(name) > 200:
            errors.append(RowError(row_num, "name", "must be at most 200 characters"))
        elif name in names:
            errors.append(RowError(row_num, "name", f'duplicate recipe name: "{name}"'))
        else:
            names.add(name)

        minutes = _val(row, "cooking_time_minutes")
        if minutes and (not minutes.isdigit()):
            errors.append(
                RowError(row_num, "cooking_time_minutes", "must be a non-negative integer")
            )

        for column, model in RECIPE_LIST_COLUMNS.items():
            try:
                _parse_items(_val(row, column), model)
            except ValueError as e:
                errors.append(RowError(row_num, column, str(e)))
    return errors


def validate_recipe_tag_refs(rows: List[Dict[str, str]], known_keys) -> List[RowError]:
    errors = []
    for i, row in enumerate(rows):
        for key in split_tag_keys(row.get("tags")):
            if key not in known_keys:
                errors.append(RowError(i + 2, "tags", f'unknown tag key "{key}"'))
    return errors


def validate_affiliate_rows(rows: List[Dict[str, str]]) -> List[RowError]:
    errors = []
    names = set()
    for i, row in enumerate(rows):
        row_num = i + 2
        name = _val(row, "canonical_name")
        if not name:
            errors.append(RowError(row_num, "canonical_name", "canonical_name is required"))
        elif name.lower() in names:
            errors.append(
                RowError(row_num, "canonical_name", f'duplicate canonical_name: "{name}"')
            )
        else:
            names.add(name.lower())
        if not _val(row, "link"):
            errors.append(RowError(row_num, "link", "link is required"))
    return errors


# ── Import ──

def _replace(db: Session, clear, insert) -> None:
    try:
        clear()
        insert()
        db.commit()
    except Exception:
        db.rollback()
        raise


def import_tags_csv(db: Session, text: str) -> int:
    rows = parse_csv(text, ["key", "type"])
    errors = validate_tag_rows(rows)
    if errors:
        raise CsvValidationError(errors)
    if not rows:
        return 0

    def clear():
        db.execute(models.recipe_tags.delete())
        db.query(models.Tag).delete()

    def insert():
        db.add_all([
            models.Tag(
                key=_val(r, "key"),
                type=_val(r, "type"),
                label_en=_or_none(_val(r, "label_en")),
                label_id=_or_none(_val(r, "label_id")),
            )
            for r in rows
        ])

    _replace(db, clear, insert)
    logger.info("Imported %d tags", len(rows))
    return len(rows)


def import_recipes_csv(db: Session, text: str) -> int:
    rows = parse_csv(text, ["name"])
    errors = validate_recipe_rows(rows)
    if errors:
        raise CsvValidationError(errors)

    tags_by_key = {t.key: t for t in db.query(models.Tag).all()}
    errors = validate_recipe_tag_refs(rows, tags_by_key)
    if errors:
        raise CsvValidationError(errors)
    if not rows:
        return 0

    def clear():
        db.execute(models.recipe_tags.delete())
        for model in (models.RecipeImage, models.RecipeStep, models.RecipeIngredient, models.Recipe):
            db.query(model).delete()

    def insert():
        for r in rows:
            minutes = _val(r, "cooking_time_minutes")
            recipe = models.Recipe(
                name=_val(r, "name"),
                description=_or_none(_val(r, "description")),
                cooking_time_minutes=int(minutes) if minutes else None,
                source=_or_none(_val(r, "source")),
                allergies=_or_none(_val(r, "allergies")),
            )
            recipe.ingredients = crud.build_ingredients(
                _parse_items(_val(r, "ingredients"), schemas.IngredientIn)
            )
            recipe.steps = crud.build_steps(_parse_items(_val(r, "steps"), schemas.StepIn))
            recipe.images = crud.build_images(_parse_items(_val(r, "images"), schemas.ImageIn))
            recipe.tags = [tags_by_key[k] for k in dict.fromkeys(split_tag_keys(r.get("tags")))]
            db.add(recipe)

    _replace(db, clear, insert)
    logger.info("Imported %d recipes", len(rows))
    return len(rows)


def import_affiliates_csv(db: Session, text: str) -> int:
    rows = parse_csv(text, ["canonical_name", "link"])
    errors = validate_affiliate_rows(rows)
    if errors:
        raise CsvValidationError(errors)
    if not rows:
        return 0

    def clear():
        db.query(models.AffiliateProduct).delete()

    def insert():
        db.add_all([
            models.AffiliateProduct(
                canonical_name=_val(r, "canonical_name"),
                link=_val(r, "link"),
                category=_or_none(_val(r, "category")),
                aliases=split_aliases(r.get("aliases")) or None,
                partner=_val(r, "partner") or DEFAULT_PARTNER,
                search_url_template=_or_none(_val(r, "search_url_template")),
            )
            for r in rows
        ])

    _replace(db, clear, insert)
    logger.info("Imported %d affiliate products", len(rows))
    return len(rows)


# ── Export ──

def _write(fields: List[str], rows: List[Dict[str, str]]) -> str:
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=fields, lineterminator="\n")
    writer.writeheader()
    writer.writerows(rows)
    return buf.getvalue()


def export_tags_csv(db: Session) -> str:
    tags = crud.get_tags(db)
    return _write(TAG_FIELDS, [
        {
            "key": t.key,
            "type": t.type,
            "label_en": t.label_en or "",
            "label_id": t.label_id or "",
        }
        for t in tags
    ])


def export_recipes_csv(db: Session) -> str:
    recipes = sorted(crud.get_all_recipes(db), key=lambda r: r.name)
    rows = []
    for r in recipes:
        ingredients = [
            {"name": i.name, "isMain": i.is_main, "position": i.position} for i in r.ingredients
        ]
        steps = [{"description": s.description, "position": s.position} for s in r.steps]
        images = [{"url": img.url, "position": img.position} for img in r.images]
        rows.append({
            "name": r.name,
            "description": r.description or "",
            "cooking_time_minutes": "" if r.cooking_time_minutes is None else str(r.cooking_time_minutes),
            "source": r.source or "",
            "allergies": r.allergies or "",
            "ingredients": json.dumps(ingredients, ensure_ascii=False),
            "steps": json.dumps(steps, ensure_ascii=False),
            "images": json.dumps(images, ensure_ascii=False),
            "tags": ",".join(sorted(t.key for t in r.tags)),
        })
    return _write(RECIPE_FIELDS, rows)


def export_affiliates_csv(db: Session) -> str:
    products = crud.get_affiliate_products(db)
    return _write(AFFILIATE_FIELDS, [
        {
            "canonical_name": p.canonical_name,
            "link": p.link,
            "category": p.category or "",
            "aliases": "|".join(clean_aliases(p.aliases)),
            "partner": p.partner or "",
            "search_url_template": p.search_url_template or "",
        }
        for p in products
    ])
