from oi_bot.config import get_settings
from oi_bot.store.db import init_db
import logging

logging.basicConfig(level=logging.INFO)

if __name__ == "__main__":
    settings = get_settings()
    logging.info(f"Initializing event bus database at {settings.DB_PATH}...")
    init_db(settings.DB_PATH)
    logging.info("Database initialized.")
