from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
    func,
)
from sqlalchemy.orm import relationship

from .db import Base


recipe_tags = Table(
    "recipe_tags",
    Base.metadata,
    Column(
        "recipe_id",
        Integer,
        ForeignKey("recipes.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "tag_id",
        Integer,
        ForeignKey("tags.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class Recipe(Base):
    __tablename__ = "recipes"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), unique=True, index=True, nullable=False)
    description = Column(Text, nullable=True)
    cooking_time_minutes = Column(Integer, nullable=True)
    source = Column(Text, nullable=True)
    allergies = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    ingredients = relationship(
        "RecipeIngredient",
        order_by="RecipeIngredient.position",
        cascade="all, delete-orphan",
    )
    steps = relationship(
        "RecipeStep",
        order_by="RecipeStep.position",
        cascade="all, delete-orphan",
    )
    images = relationship(
        "RecipeImage",
        order_by="RecipeImage.position",
        cascade="all, delete-orphan",
    )
    tags = relationship("Tag", secondary=recipe_tags, back_populates="recipes")


class RecipeIngredient(Base):
    __tablename__ = "recipe_ingredients"
    id = Column(Integer, primary_key=True)
    recipe_id = Column(
        Integer, ForeignKey("recipes.id", ondelete="CASCADE"), index=True, nullable=False
    )
    name = Column(Text, nullable=False)
    is_main = Column(Boolean, default=False, nullable=False)
    position = Column(Integer, default=0, nullable=False)


class RecipeStep(Base):
    __tablename__ = "recipe_steps"
    id = Column(Integer, primary_key=True)
    recipe_id = Column(
        Integer, ForeignKey("recipes.id", ondelete="CASCADE"), index=True, nullable=False
    )
    description = Column(Text, nullable=False)
    position = Column(Integer, default=0, nullable=False)


class RecipeImage(Base):
    __tablename__ = "recipe_images"
    id = Column(Integer, primary_key=True)
    recipe_id = Column(
        Integer, ForeignKey("recipes.id", ondelete="CASCADE"), index=True, nullable=False
    )
    url = Column(Text, nullable=False)
    position = Column(Integer, default=0, nullable=False)


class Tag(Base):
    __tablename__ = "tags"
    id = Column(Integer, primary_key=True)
    key = Column(String(100), unique=True, nullable=False)
    type = Column(String(50), nullable=False)
    label_en = Column(Text, nullable=True)
    label_id = Column(Text, nullable=True)

    recipes = relationship("Recipe", secondary=recipe_tags, back_populates="tags")


class AffiliateProduct(Base):
    __tablename__ = "affiliate_products"
    id = Column(Integer, primary_key=True)
    canonical_name = Column(String(200), unique=True, index=True, nullable=False)
    link = Column(Text, nullable=False)
    aliases = Column(JSON, nullable=True)  # list of strings
    category = Column(String(100), nullable=True)
    partner = Column(String(50), default="tokopedia", server_default="tokopedia", nullable=False)
    # partner search URL for this product, placeholder syntax is partner specific
    search_url_template = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
