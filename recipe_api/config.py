import os
from dotenv import load_dotenv

from . import matcher

load_dotenv()

# Database - any SQLAlchemy URL; sqlite file in the working dir by default
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./recipes.db")

# Affiliate matching, defaults live in recipe_api.matcher
# {query} is replaced with the URL-encoded ingredient name
AFFILIATE_SEARCH_URL_TEMPLATE = os.getenv(
    "AFFILIATE_SEARCH_URL_TEMPLATE", matcher.DEFAULT_SEARCH_URL_TEMPLATE
)
# "contains" or "fuzzy" - only one runs per deployment
AFFILIATE_MATCH_STRATEGY = os.getenv("AFFILIATE_MATCH_STRATEGY", matcher.STRATEGY_CONTAINS)
FUZZY_MATCH_THRESHOLD = float(
    os.getenv("FUZZY_MATCH_THRESHOLD", str(matcher.DEFAULT_FUZZY_THRESHOLD))
)
MAX_INGREDIENT_LENGTH = int(
    os.getenv("MAX_INGREDIENT_LENGTH", str(matcher.MAX_INGREDIENT_LENGTH))
)

# HTTP
CORS_ORIGINS = [
    o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()
]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
