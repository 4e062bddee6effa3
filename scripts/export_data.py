import logging
from pathlib import Path

from recipe_api import csv_io
from recipe_api.db import init_db, SessionLocal

logger = logging.getLogger("export_data")

DATA_DIR = Path(__file__).resolve().parents[1] / 'data'

EXPORTS = [
    ('tags.csv', csv_io.export_tags_csv),
    ('recipes.csv', csv_io.export_recipes_csv),
    ('affiliates.csv', csv_io.export_affiliates_csv),
]


def main():
    logging.basicConfig(level=logging.INFO, format='%(levelname)s %(message)s')
    init_db()
    DATA_DIR.mkdir(parents=True, exist_ok=True)
    db = SessionLocal()
    try:
        for filename, export_fn in EXPORTS:
            content = export_fn(db)
            (DATA_DIR / filename).write_text(content, encoding='utf-8')
            logger.info('Wrote %s', DATA_DIR / filename)
    finally:
        db.close()


if __name__ == '__main__':
    main()
