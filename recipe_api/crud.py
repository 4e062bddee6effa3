import logging
from typing import List, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from . import config, matcher, models, schemas
from .normalize import clean_aliases

logger = logging.getLogger(__name__)


class UnknownTagError(ValueError):
    """Raised when a recipe references tag keys that do not exist."""

    def __init__(self, keys):
        self.keys = list(keys)
        super().__init__(f"unknown tag key(s): {', '.join(self.keys)}")


# ── Recipes ──

def _with_relations(query):
    return query.options(
        selectinload(models.Recipe.ingredients),
        selectinload(models.Recipe.steps),
        selectinload(models.Recipe.images),
        selectinload(models.Recipe.tags),
    )


def _search(query, q: Optional[str]):
    if q and q.strip():
        query = query.filter(func.lower(models.Recipe.name).contains(q.strip().lower()))
    return query


def get_recipe(db: Session, recipe_id: int):
    return (
        _with_relations(db.query(models.Recipe))
        .filter(models.Recipe.id == recipe_id)
        .first()
    )


def get_recipe_by_name(db: Session, name: str):
    return db.query(models.Recipe).filter(models.Recipe.name == name).first()


def get_recipes(db: Session, skip: int = 0, limit: int = 100, q: Optional[str] = None):
    query = _search(_with_relations(db.query(models.Recipe)), q)
    return query.order_by(models.Recipe.id).offset(skip).limit(limit).all()


def count_recipes(db: Session, q: Optional[str] = None) -> int:
    return _search(db.query(models.Recipe), q).count()


def get_all_recipes(db: Session):
    return _with_relations(db.query(models.Recipe)).order_by(models.Recipe.id).all()


def _resolve_tags(db: Session, keys: Sequence[str]) -> List[models.Tag]:
    keys = [k.strip() for k in keys if k and k.strip()]
    if not keys:
        return []
    found = db.query(models.Tag).filter(models.Tag.key.in_(keys)).all()
    by_key = {t.key: t for t in found}
    missing = [k for k in keys if k not in by_key]
    if missing:
        raise UnknownTagError(missing)
    # dedupe, keep request order
    return list({k: by_key[k] for k in keys}.values())


def _position(item, index: int) -> int:
    pos = getattr(item, "position", None)
    return index if pos is None else pos


def build_ingredients(items) -> List[models.RecipeIngredient]:
    rows = []
    for i, item in enumerate(items or []):
        if isinstance(item, str):
            if not item.strip():
                continue
            rows.append(models.RecipeIngredient(name=item.strip(), is_main=False, position=i))
        else:
            rows.append(models.RecipeIngredient(
                name=item.name.strip(), is_main=item.is_main, position=_position(item, i)
            ))
    return rows


def build_steps(items) -> List[models.RecipeStep]:
    rows = []
    for i, item in enumerate(items or []):
        if isinstance(item, str):
            if not item.strip():
                continue
            rows.append(models.RecipeStep(description=item.strip(), position=i))
        else:
            rows.append(models.RecipeStep(
                description=item.description.strip(), position=_position(item, i)
            ))
    return rows


def build_images(items) -> List[models.RecipeImage]:
    rows = []
    for i, item in enumerate(items or []):
        if isinstance(item, str):
            if not item.strip():
                continue
            rows.append(models.RecipeImage(url=item.strip(), position=i))
        else:
            rows.append(models.RecipeImage(url=item.url.strip(), position=_position(item, i)))
    return rows


def _apply(db: Session, db_recipe: models.Recipe, recipe: schemas.RecipeCreate):
    tags = _resolve_tags(db, recipe.tags)
    db_recipe.name = recipe.name.strip()
    db_recipe.description = recipe.description
    db_recipe.cooking_time_minutes = recipe.cooking_time_minutes
    db_recipe.source = recipe.source
    db_recipe.allergies = recipe.allergies
    db_recipe.ingredients = build_ingredients(recipe.ingredients)
    db_recipe.steps = build_steps(recipe.steps)
    db_recipe.images = build_images(recipe.images)
    db_recipe.tags = tags


def create_recipe(db: Session, recipe: schemas.RecipeCreate):
    db_recipe = models.Recipe()
    _apply(db, db_recipe, recipe)
    db.add(db_recipe)
    db.commit()
    return get_recipe(db, db_recipe.id)


def update_recipe(db: Session, recipe_id: int, recipe: schemas.RecipeCreate):
    db_recipe = get_recipe(db, recipe_id)
    if not db_recipe:
        return None
    _apply(db, db_recipe, recipe)
    db.add(db_recipe)
    db.commit()
    db.expire_all()
    return get_recipe(db, recipe_id)


def delete_recipe(db: Session, recipe_id: int):
    db_recipe = db.query(models.Recipe).filter(models.Recipe.id == recipe_id).first()
    if not db_recipe:
        return False
    db.delete(db_recipe)
    db.commit()
    return True


# ── Tags ──

def get_tags(db: Session, tag_type: Optional[str] = None):
    query = db.query(models.Tag)
    if tag_type:
        query = query.filter(models.Tag.type == tag_type)
    return query.order_by(models.Tag.type, models.Tag.key).all()


# ── Affiliate products ──

def get_affiliate_products(db: Session):
    return db.query(models.AffiliateProduct).order_by(models.AffiliateProduct.canonical_name).all()


def get_affiliate_product(db: Session, product_id: int):
    return (
        db.query(models.AffiliateProduct)
        .filter(models.AffiliateProduct.id == product_id)
        .first()
    )


def to_catalog_entry(row: models.AffiliateProduct) -> matcher.AffiliateProduct:
    return matcher.AffiliateProduct(
        id=row.id,
        canonical_name=row.canonical_name,
        link=row.link,
        aliases=tuple(clean_aliases(row.aliases)),
        category=row.category,
        search_url_template=row.search_url_template,
    )


def get_affiliate_catalog(db: Session) -> List[matcher.AffiliateProduct]:
    """Snapshot of the catalog in matching order (insertion order by id)."""
    rows = db.query(models.AffiliateProduct).order_by(models.AffiliateProduct.id).all()
    return [to_catalog_entry(r) for r in rows]


def match_strategy() -> str:
    strategy = (config.AFFILIATE_MATCH_STRATEGY or "").strip().lower()
    if strategy not in matcher.STRATEGIES:
        logger.warning(
            "Unknown AFFILIATE_MATCH_STRATEGY %r, using %r",
            config.AFFILIATE_MATCH_STRATEGY, matcher.STRATEGY_CONTAINS,
        )
        return matcher.STRATEGY_CONTAINS
    return strategy


def match_ingredient(
    db: Session,
    name: str,
    catalog: Optional[Sequence[matcher.AffiliateProduct]] = None,
) -> matcher.MatchResult:
    """Match one ingredient name, loading the catalog unless one is given."""
    if catalog is None:
        catalog = get_affiliate_catalog(db)
    result = matcher.match_ingredient(
        name,
        catalog,
        search_url_template=config.AFFILIATE_SEARCH_URL_TEMPLATE,
        strategy=match_strategy(),
        fuzzy_threshold=config.FUZZY_MATCH_THRESHOLD,
    )
    logger.debug("Matched %r -> %s (%s)", name, result.match_type.value, result.link)
    return result
