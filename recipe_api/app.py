"""
FastAPI application for the recipe and affiliate product API.

Provides REST endpoints for:
- Browsing recipes with their ingredients, steps, images and tags
- Matching ingredient names to curated affiliate products
- Bulk CSV import of tags, recipes and affiliate products

Run with:
    uvicorn recipe_api.app:app --reload
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import Depends, FastAPI, File, HTTPException, Query, Request, Response, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.orm import Session

from . import config, crud, csv_io, matcher, schemas
from .db import SessionLocal, init_db
from .localize import tag_label
from .matcher import InvalidArgument, validate_ingredient_name

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # Initialize DB once at startup
    init_db()
    logger.info("Match strategy: %s", crud.match_strategy())
    yield


app = FastAPI(
    title="Recipe Affiliate API",
    description="Recipes with affiliate product links for their ingredients",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def validation_failed(details):
    return HTTPException(
        status_code=400,
        detail={"error": "Validation failed", "details": list(details)},
    )


def run_import(import_fn, db: Session, content: str, what: str) -> schemas.ImportResult:
    """Run a CSV import and map its failures onto HTTP errors."""
    try:
        imported = import_fn(db, content)
    except csv_io.CsvValidationError as e:
        raise validation_failed(e.details)
    except Exception:
        logger.exception("%s import failed", what)
        raise HTTPException(status_code=500, detail="Import failed")
    return schemas.ImportResult(imported=imported)


async def read_csv_body(request: Request) -> str:
    raw = await request.body()
    try:
        content = raw.decode("utf-8")
    except UnicodeDecodeError:
        raise validation_failed(["CSV body must be UTF-8 encoded"])
    if not content.strip():
        raise validation_failed(["Empty CSV body"])
    return content


@app.get("/health", response_model=schemas.HealthResponse, tags=["health"])
def health_check(db: Session = Depends(get_db)):
    try:
        db.execute(text("SELECT 1"))
        db_status = "connected"
    except Exception as e:
        logger.warning("Health check database error: %s", e)
        db_status = f"error: {e}"
    return schemas.HealthResponse(
        status="ok",
        timestamp=datetime.now(timezone.utc),
        database=db_status,
    )


# ── Recipes ──

@app.get("/api/recipes", response_model=schemas.RecipePage, tags=["recipes"])
def list_recipes(
    request: Request,
    response: Response,
    q: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    total = crud.count_recipes(db, q=q)
    items = crud.get_recipes(db, skip=(page - 1) * page_size, limit=page_size, q=q)

    # RFC 5988 pagination links
    links = []
    last_page = max(1, (total + page_size - 1) // page_size)
    if page > 1:
        prev_url = request.url.include_query_params(page=min(page - 1, last_page))
        links.append(f'<{prev_url}>; rel="prev"')
    if page < last_page:
        next_url = request.url.include_query_params(page=page + 1)
        links.append(f'<{next_url}>; rel="next"')
    first_url = request.url.include_query_params(page=1)
    last_url = request.url.include_query_params(page=last_page)
    links.append(f'<{first_url}>; rel="first"')
    links.append(f'<{last_url}>; rel="last"')
    response.headers["Link"] = ", ".join(links)

    return {"items": items, "total": total, "page": page, "page_size": page_size}


@app.get("/api/recipes/all", response_model=List[schemas.RecipeDetail], tags=["recipes"])
def list_all_recipes(db: Session = Depends(get_db)):
    return crud.get_all_recipes(db)


@app.post("/api/recipes/import", response_model=schemas.ImportResult, tags=["recipes"])
async def import_recipes(request: Request, db: Session = Depends(get_db)):
    content = await read_csv_body(request)
    return run_import(csv_io.import_recipes_csv, db, content, "Recipe")


@app.get("/api/recipes/{recipe_id}", response_model=schemas.RecipeDetail, tags=["recipes"])
def get_recipe(recipe_id: int, db: Session = Depends(get_db)):
    r = crud.get_recipe(db, recipe_id)
    if not r:
        raise HTTPException(status_code=404, detail="Recipe not found")
    return r


@app.get(
    "/api/recipes/{recipe_id}/with-affiliates",
    response_model=schemas.RecipeWithAffiliates,
    tags=["recipes"],
)
def get_recipe_with_affiliates(recipe_id: int, db: Session = Depends(get_db)):
    r = crud.get_recipe(db, recipe_id)
    if not r:
        raise HTTPException(status_code=404, detail="Recipe not found")

    # one catalog snapshot for every ingredient of the recipe
    catalog = crud.get_affiliate_catalog(db)
    detail = schemas.RecipeDetail.model_validate(r)
    ingredients = []
    for ing in detail.ingredients:
        link = match_type = None
        try:
            name = validate_ingredient_name(ing.name, config.MAX_INGREDIENT_LENGTH)
        except InvalidArgument:
            logger.warning("Skipping affiliate match for ingredient %s of recipe %s", ing.id, r.id)
        else:
            result = crud.match_ingredient(db, name, catalog)
            link, match_type = result.link, result.match_type.value
        ingredients.append(schemas.EnrichedIngredient(
            **ing.model_dump(), affiliate_link=link, affiliate_match_type=match_type
        ))
    return schemas.RecipeWithAffiliates(
        **detail.model_dump(exclude={"ingredients"}), ingredients=ingredients
    )


@app.post("/api/recipes", response_model=schemas.RecipeDetail, tags=["recipes"])
def create_recipe(recipe: schemas.RecipeCreate, db: Session = Depends(get_db)):
    if crud.get_recipe_by_name(db, recipe.name.strip()):
        raise HTTPException(status_code=400, detail="Recipe with this name already exists")
    try:
        return crud.create_recipe(db, recipe)
    except crud.UnknownTagError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))


@app.put("/api/recipes/{recipe_id}", response_model=schemas.RecipeDetail, tags=["recipes"])
def update_recipe(recipe_id: int, recipe: schemas.RecipeCreate, db: Session = Depends(get_db)):
    existing = crud.get_recipe_by_name(db, recipe.name.strip())
    if existing and existing.id != recipe_id:
        raise HTTPException(status_code=400, detail="Recipe with this name already exists")
    try:
        updated = crud.update_recipe(db, recipe_id, recipe)
    except crud.UnknownTagError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))
    if not updated:
        raise HTTPException(status_code=404, detail="Recipe not found")
    return updated


@app.delete("/api/recipes/{recipe_id}", response_model=schemas.DeleteResponse, tags=["recipes"])
def delete_recipe(recipe_id: int, db: Session = Depends(get_db)):
    if not crud.delete_recipe(db, recipe_id):
        raise HTTPException(status_code=404, detail="Recipe not found")
    return {"deleted": True}


# ── Tags ──

@app.get("/api/tags", response_model=List[schemas.LocalizedTag], tags=["tags"])
def list_tags(
    type: Optional[str] = None,
    lang: Optional[str] = None,
    db: Session = Depends(get_db),
):
    return [
        schemas.LocalizedTag(
            **schemas.Tag.model_validate(t).model_dump(), label=tag_label(t, lang)
        )
        for t in crud.get_tags(db, tag_type=type)
    ]


@app.post("/api/tags/import", response_model=schemas.ImportResult, tags=["tags"])
async def import_tags(request: Request, db: Session = Depends(get_db)):
    content = await read_csv_body(request)
    return run_import(csv_io.import_tags_csv, db, content, "Tag")


# ── Affiliates ──

@app.get("/api/affiliates", response_model=List[schemas.AffiliateProduct], tags=["affiliates"])
def list_affiliates(db: Session = Depends(get_db)):
    return crud.get_affiliate_products(db)


# Declared before /{product_id} so "match" is never parsed as an id
@app.get("/api/affiliates/match", response_model=schemas.MatchResponse, tags=["affiliates"])
def match_affiliate(ingredient: Optional[str] = None, db: Session = Depends(get_db)):
    try:
        name = validate_ingredient_name(ingredient, config.MAX_INGREDIENT_LENGTH)
    except InvalidArgument:
        raise HTTPException(
            status_code=400,
            detail=(
                "Missing or invalid query parameter: ingredient "
                f"(max {config.MAX_INGREDIENT_LENGTH} chars)"
            ),
        )

    result = crud.match_ingredient(db, name)
    product = None
    if result.product is not None:
        product = crud.get_affiliate_product(db, result.product.id)
        if product is None:
            # row removed after the catalog snapshot was taken
            logger.warning("Affiliate product %s vanished during match", result.product.id)
            result = matcher.MatchResult(
                link=matcher.build_search_link(name, config.AFFILIATE_SEARCH_URL_TEMPLATE),
                match_type=matcher.MatchType.SEARCH,
            )
    return schemas.MatchResponse(
        link=result.link,
        match_type=result.match_type.value,
        product=schemas.AffiliateProduct.model_validate(product) if product else None,
    )


@app.post("/api/affiliates/import", response_model=schemas.ImportResult, tags=["affiliates"])
async def import_affiliates(file: Optional[UploadFile] = File(None), db: Session = Depends(get_db)):
    if file is None:
        raise validation_failed(["No file uploaded"])
    raw = await file.read()
    try:
        content = raw.decode("utf-8")
    except UnicodeDecodeError:
        raise validation_failed(["CSV file must be UTF-8 encoded"])
    if not content.strip():
        raise validation_failed(["Empty CSV file"])
    return run_import(csv_io.import_affiliates_csv, db, content, "Affiliate")


@app.get(
    "/api/affiliates/{product_id}",
    response_model=schemas.AffiliateProduct,
    tags=["affiliates"],
)
def get_affiliate(product_id: int, db: Session = Depends(get_db)):
    product = crud.get_affiliate_product(db, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Affiliate product not found")
    return product
