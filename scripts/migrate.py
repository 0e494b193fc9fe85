"""Apply pending regwatch schema migrations with yoyo-migrations.

Usage:
    python scripts/migrate.py
    python scripts/migrate.py --rollback-last
"""

import argparse
import logging
import sys
from pathlib import Path

from yoyo import get_backend, read_migrations

# Add project root to path so config is importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from config.settings import settings

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parent.parent / "migrations"


def main() -> None:
    parser = argparse.ArgumentParser(description="Apply regwatch database migrations")
    parser.add_argument(
        "--rollback-last",
        action="store_true",
        help="Roll back the most recently applied migration instead",
    )
    args = parser.parse_args()

    logger.info("Connecting to database...")
    backend = get_backend(settings.database_url_sync)
    migrations = read_migrations(str(MIGRATIONS_DIR))

    with backend.lock():
        if args.rollback_last:
            applied = backend.to_rollback(migrations)
            if not applied:
                logger.info("Nothing to roll back.")
                return
            logger.info("Rolling back %s", applied[0].id)
            backend.rollback_migrations(applied[:1])
            return

        pending = backend.to_apply(migrations)
        if not pending:
            logger.info("Schema is up to date.")
            return

        for migration in pending:
            logger.info("Pending: %s", migration.id)
        backend.apply_migrations(pending)
        logger.info("Applied %d migration(s).", len(pending))


if __name__ == "__main__":
    main()
