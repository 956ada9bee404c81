# src/teenlancer_sync/scripts/migrate.py
from __future__ import annotations
import os
from alembic import command
from alembic.config import Config

from teenlancer_sync.core.settings import settings

def run_upgrade_head() -> None:
    migrations_dir = os.path.join(os.path.dirname(__file__), "..", "..", "..", "migrations")
    cfg = Config(os.path.join(migrations_dir, "alembic.ini"))
    # Alembic runs synchronously; use the psycopg flavour of the URL
    cfg.set_main_option("sqlalchemy.url", settings.database_url_sync)
    cfg.set_main_option("script_location", os.path.abspath(migrations_dir))
    command.upgrade(cfg, "head")

if __name__ == "__main__":
    run_upgrade_head()
