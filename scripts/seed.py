import logging

from recipe_api import crud, models, schemas
from recipe_api.db import init_db, SessionLocal

logger = logging.getLogger("seed")

TAGS = [
    # (key, type, label_en, label_id)
    ('indonesian', 'cuisine', 'Indonesian', 'Indonesia'),
    ('japanese', 'cuisine', 'Japanese', 'Jepang'),
    ('chinese', 'cuisine', 'Chinese', 'Cina'),
    ('western', 'cuisine', 'Western', 'Barat'),
    ('vegetarian', 'diet', 'Vegetarian', 'Vegetarian'),
    ('vegan', 'diet', 'Vegan', 'Vegan'),
    ('halal', 'diet', 'Halal', 'Halal'),
    ('gluten-free', 'diet', 'Gluten Free', 'Bebas Gluten'),
    ('easy', 'difficulty', 'Easy', 'Mudah'),
    ('medium', 'difficulty', 'Medium', 'Sedang'),
    ('hard', 'difficulty', 'Hard', 'Sulit'),
    ('under-30min', 'time', 'Under 30 min', 'Kurang dari 30 menit'),
    ('under-60min', 'time', 'Under 1 hour', 'Kurang dari 1 jam'),
    ('breakfast', 'meal', 'Breakfast', 'Sarapan'),
    ('lunch', 'meal', 'Lunch', 'Makan Siang'),
    ('dinner', 'meal', 'Dinner', 'Makan Malam'),
]

RECIPES = [
    {
        'name': 'Nasi Goreng',
        'description': 'Classic Indonesian fried rice with sweet soy sauce and sambal',
        'cooking_time_minutes': 20,
        'source': 'Traditional',
        'allergies': 'soy, egg',
        'ingredients': [
            {'name': 'nasi putih', 'is_main': True},
            'minyak goreng', 'bawang putih', 'bawang merah', 'kecap manis', 'telur', 'garam',
        ],
        'steps': [
            'Panaskan minyak goreng di wajan',
            'Tumis bawang putih dan bawang merah hingga harum',
            'Masukkan nasi putih, aduk rata',
            'Tambahkan kecap manis dan garam, aduk hingga merata',
            'Goreng telur di samping, sajikan di atas nasi',
        ],
        'images': ['https://placehold.co/600x400?text=Nasi+Goreng'],
        'tags': ['indonesian', 'halal', 'easy', 'under-30min', 'lunch', 'dinner'],
    },
    {
        'name': 'Soto Ayam',
        'description': 'Indonesian chicken soup with turmeric, lemongrass, and glass noodles',
        'cooking_time_minutes': 45,
        'source': 'Traditional',
        'ingredients': [
            {'name': 'ayam', 'is_main': True},
            'kunyit', 'serai', 'soun', 'bawang putih', 'daun jeruk',
        ],
        'steps': [
            'Rebus ayam dengan air, kunyit, serai, dan daun jeruk',
            'Angkat ayam, suwir-suwir dagingnya',
            'Saring kaldu, masukkan kembali ayam suwir',
            'Rebus soun hingga lunak, tiriskan',
            'Sajikan kaldu dengan soun dan ayam suwir',
        ],
        'images': ['https://placehold.co/600x400?text=Soto+Ayam'],
        'tags': ['indonesian', 'halal', 'medium', 'under-60min', 'lunch'],
    },
    {
        'name': 'Gado-gado',
        'description': 'Indonesian peanut sauce salad with mixed vegetables and tofu',
        'cooking_time_minutes': 30,
        'source': 'Traditional',
        'allergies': 'peanut',
        'ingredients': [
            {'name': 'kacang tanah', 'is_main': True},
            'tahu', 'tempe', 'kangkung', 'tauge', 'kentang',
        ],
        'steps': [
            'Goreng kacang tanah, haluskan untuk bumbu',
            'Rebus kangkung, tauge, dan kentang',
            'Goreng tahu dan tempe hingga kecokelatan',
            'Siram sayuran dengan bumbu kacang',
        ],
        'images': ['https://placehold.co/600x400?text=Gado-gado'],
        'tags': ['indonesian', 'vegetarian', 'vegan', 'halal', 'easy', 'under-30min'],
    },
]

AFFILIATES = [
    # (canonical_name, aliases, category)
    ('minyak goreng', ['cooking oil', 'vegetable oil'], 'oil'),
    ('bawang putih', ['garlic'], 'spice'),
    ('bawang merah', ['shallot', 'red onion'], 'spice'),
    ('kecap manis', ['sweet soy sauce'], 'sauce'),
    ('garam', ['salt'], 'seasoning'),
    ('gula pasir', ['sugar', 'white sugar'], 'seasoning'),
    ('merica', ['pepper', 'black pepper'], 'spice'),
    ('kunyit', ['turmeric'], 'spice'),
    ('jahe', ['ginger'], 'spice'),
    ('serai', ['lemongrass'], 'herb'),
    ('daun jeruk', ['kaffir lime leaves'], 'herb'),
    ('daun salam', ['bay leaf', 'indonesian bay leaf'], 'herb'),
    ('ketumbar', ['coriander', 'coriander seeds'], 'spice'),
    ('cabai merah', ['red chili', 'chili pepper'], 'spice'),
    ('cabai rawit', ["bird's eye chili"], 'spice'),
    ('kacang tanah', ['peanut', 'groundnut'], 'nut'),
    ('santan', ['coconut milk', 'coconut cream'], 'dairy-alt'),
    ('tepung terigu', ['wheat flour', 'all-purpose flour'], 'flour'),
    ('tepung beras', ['rice flour'], 'flour'),
    ('tahu', ['tofu', 'bean curd'], 'protein'),
    ('tempe', ['tempeh'], 'protein'),
]


def seed_tags(db):
    existing = {key for (key,) in db.query(models.Tag.key)}
    added = 0
    for key, tag_type, label_en, label_id in TAGS:
        if key in existing:
            continue
        db.add(models.Tag(key=key, type=tag_type, label_en=label_en, label_id=label_id))
        added += 1
    db.commit()
    return added


def seed_recipes(db):
    added = 0
    for data in RECIPES:
        if crud.get_recipe_by_name(db, data['name']):
            continue
        crud.create_recipe(db, schemas.RecipeCreate.model_validate(data))
        added += 1
    return added


def seed_affiliates(db):
    existing = {name for (name,) in db.query(models.AffiliateProduct.canonical_name)}
    added = 0
    for name, aliases, category in AFFILIATES:
        if name in existing:
            continue
        slug = name.replace(' ', '-')
        db.add(models.AffiliateProduct(
            canonical_name=name,
            link=f'https://tokopedia.link/{slug}',
            aliases=aliases,
            category=category,
        ))
        added += 1
    db.commit()
    return added


def main():
    logging.basicConfig(level=logging.INFO, format='%(levelname)s %(message)s')
    init_db()
    db = SessionLocal()
    try:
        logger.info('Seeded %d tags', seed_tags(db))
        logger.info('Seeded %d recipes', seed_recipes(db))
        logger.info('Seeded %d affiliate products', seed_affiliates(db))
    finally:
        db.close()


if __name__ == '__main__':
    main()
