"""Create regulatory_documents table with one-active-version-per-URL constraint."""

from yoyo import step

__depends__ = {"0001_extensions"}

steps = [
    step(
        """
        CREATE TABLE regulatory_documents (
            id              UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            country         VARCHAR(2) NOT NULL,
            category        VARCHAR(50) NOT NULL,
            title           TEXT NOT NULL,
            source_url      TEXT NOT NULL,
            content         TEXT,
            extracted_text  TEXT,
            content_hash    TEXT,
            token_count     INTEGER DEFAULT 0,
            effective_date  DATE,
            expiry_date     TIMESTAMPTZ,
            status          VARCHAR(20) NOT NULL DEFAULT 'active'
                                CHECK (status IN ('active', 'superseded')),
            scraped_at      TIMESTAMPTZ NOT NULL,
            last_checked_at TIMESTAMPTZ NOT NULL,
            metadata        JSONB,
            created_at      TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
        """,
        "DROP TABLE IF EXISTS regulatory_documents",
    ),
    # At most one active row per source URL; superseded rows are unrestricted
    step(
        """
        CREATE UNIQUE INDEX idx_regulatory_documents_active_url
            ON regulatory_documents (source_url)
            WHERE status = 'active'
        """,
        "DROP INDEX IF EXISTS idx_regulatory_documents_active_url",
    ),
    step(
        "CREATE INDEX idx_regulatory_documents_source_url ON regulatory_documents (source_url)",
        "DROP INDEX IF EXISTS idx_regulatory_documents_source_url",
    ),
    step(
        "CREATE INDEX idx_regulatory_documents_country ON regulatory_documents (country)",
        "DROP INDEX IF EXISTS idx_regulatory_documents_country",
    ),
    step(
        "CREATE INDEX idx_regulatory_documents_category ON regulatory_documents (category)",
        "DROP INDEX IF EXISTS idx_regulatory_documents_category",
    ),
    step(
        "CREATE INDEX idx_regulatory_documents_status ON regulatory_documents (status)",
        "DROP INDEX IF EXISTS idx_regulatory_documents_status",
    ),
]
