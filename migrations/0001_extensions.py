"""Create required PostgreSQL extensions."""

from yoyo import step

__depends__ = {}  # type: ignore[var-annotated]

steps = [
    # gen_random_uuid() on PostgreSQL < 13
    step(
        "CREATE EXTENSION IF NOT EXISTS pgcrypto",
        "DROP EXTENSION IF EXISTS pgcrypto",
    ),
]
