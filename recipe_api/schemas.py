from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    # camelCase on the wire, snake_case in Python
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ── Recipe input ──

class IngredientIn(ApiModel):
    name: str = Field(..., min_length=1)
    is_main: bool = False
    position: Optional[int] = None


class StepIn(ApiModel):
    description: str = Field(..., min_length=1)
    position: Optional[int] = None


class ImageIn(ApiModel):
    url: str = Field(..., min_length=1)
    position: Optional[int] = None


class RecipeBase(ApiModel):
    name: str = Field(
        ..., min_length=1, max_length=200,
        json_schema_extra={"example": "Nasi Goreng"},
    )
    description: Optional[str] = None
    cooking_time_minutes: Optional[int] = Field(default=None, ge=0)
    source: Optional[str] = None
    allergies: Optional[str] = None


class RecipeCreate(RecipeBase):
    # Plain strings are accepted for ingredients/steps/images
    ingredients: List[Union[str, IngredientIn]] = Field(
        default_factory=list,
        json_schema_extra={"example": ["nasi putih", "kecap manis", "telur"]},
    )
    steps: List[Union[str, StepIn]] = Field(
        default_factory=list,
        json_schema_extra={
            "example": [
                "Panaskan minyak",
                "Tumis bawang",
                "Masukkan nasi dan kecap",
            ]
        },
    )
    images: List[Union[str, ImageIn]] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)


# ── Recipe output ──

class Ingredient(ApiModel):
    id: int
    name: str
    is_main: bool
    position: int


class Step(ApiModel):
    id: int
    description: str
    position: int


class Image(ApiModel):
    id: int
    url: str
    position: int


class Tag(ApiModel):
    id: int
    key: str
    type: str
    label_en: Optional[str] = None
    label_id: Optional[str] = None


class LocalizedTag(Tag):
    label: str


class Recipe(RecipeBase):
    id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class RecipeDetail(Recipe):
    ingredients: List[Ingredient] = Field(default_factory=list)
    steps: List[Step] = Field(default_factory=list)
    images: List[Image] = Field(default_factory=list)
    tags: List[Tag] = Field(default_factory=list)


class RecipePage(ApiModel):
    items: List[RecipeDetail]
    total: int
    page: int
    page_size: int


class EnrichedIngredient(Ingredient):
    affiliate_link: Optional[str] = None
    affiliate_match_type: Optional[str] = None


class RecipeWithAffiliates(RecipeDetail):
    ingredients: List[EnrichedIngredient] = Field(default_factory=list)


class DeleteResponse(ApiModel):
    deleted: bool


# ── Affiliates ──

class AffiliateProduct(ApiModel):
    id: int
    canonical_name: str
    link: str
    aliases: List[str] = Field(default_factory=list)
    category: Optional[str] = None
    partner: Optional[str] = None
    search_url_template: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("aliases", mode="before")
    @classmethod
    def _none_to_empty(cls, v):
        return list(v) if v else []


class MatchResponse(ApiModel):
    link: str
    match_type: str
    product: Optional[AffiliateProduct] = None


# ── Misc ──

class ImportResult(ApiModel):
    imported: int


class HealthResponse(ApiModel):
    status: str
    timestamp: datetime
    database: str
