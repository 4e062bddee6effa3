import logging
import sys
from pathlib import Path

from recipe_api import csv_io
from recipe_api.db import init_db, SessionLocal

logger = logging.getLogger("import_data")

DATA_DIR = Path(__file__).resolve().parents[1] / 'data'

# Tags first: recipes reference tag keys
IMPORTS = [
    ('tags.csv', csv_io.import_tags_csv),
    ('recipes.csv', csv_io.import_recipes_csv),
    ('affiliates.csv', csv_io.import_affiliates_csv),
]


def main():
    logging.basicConfig(level=logging.INFO, format='%(levelname)s %(message)s')
    init_db()
    db = SessionLocal()
    try:
        for filename, import_fn in IMPORTS:
            p = DATA_DIR / filename
            if not p.exists():
                logger.warning('%s not found, skipping', p)
                continue
            try:
                count = import_fn(db, p.read_text(encoding='utf-8'))
            except csv_io.CsvValidationError as e:
                logger.error('Validation errors in %s:\n%s',
                             filename, csv_io.format_validation_errors(e.errors))
                return 1
            logger.info('Imported %d rows from %s', count, filename)
    finally:
        db.close()
    return 0


if __name__ == '__main__':
    sys.exit(main())
