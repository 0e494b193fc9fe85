"""Add weighted full-text search vector to regulatory_documents."""

from yoyo import step

__depends__ = {"0002_regulatory_documents"}

steps = [
    step(
        """
        ALTER TABLE regulatory_documents
        ADD COLUMN search_vector tsvector GENERATED ALWAYS AS (
            setweight(to_tsvector('english', coalesce(title, '')), 'A') ||
            setweight(to_tsvector('english', coalesce(extracted_text, '')), 'B')
        ) STORED
        """,
        "ALTER TABLE regulatory_documents DROP COLUMN IF EXISTS search_vector",
    ),
    step(
        """
        CREATE INDEX idx_regulatory_documents_search ON regulatory_documents
            USING gin (search_vector)
        """,
        "DROP INDEX IF EXISTS idx_regulatory_documents_search",
    ),
]
