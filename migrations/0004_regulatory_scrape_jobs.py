"""Create regulatory_scrape_jobs run log."""

from yoyo import step

__depends__ = {"0003_document_search_vector"}

steps = [
    step(
        """
        CREATE TABLE regulatory_scrape_jobs (
            id                 UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            country            VARCHAR(2),
            category           VARCHAR(50),
            priority           VARCHAR(10),
            status             VARCHAR(20) NOT NULL DEFAULT 'pending'
                                   CHECK (status IN (
                                       'pending', 'in_progress', 'completed', 'failed'
                                   )),
            started_at         TIMESTAMPTZ,
            completed_at       TIMESTAMPTZ,
            documents_scraped  INTEGER NOT NULL DEFAULT 0,
            documents_updated  INTEGER NOT NULL DEFAULT 0,
            documents_archived INTEGER NOT NULL DEFAULT 0,
            error_message      TEXT,
            metadata           JSONB,
            created_at         TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
        """,
        "DROP TABLE IF EXISTS regulatory_scrape_jobs",
    ),
    step(
        "CREATE INDEX idx_regulatory_scrape_jobs_status ON regulatory_scrape_jobs (status)",
        "DROP INDEX IF EXISTS idx_regulatory_scrape_jobs_status",
    ),
    step(
        "CREATE INDEX idx_regulatory_scrape_jobs_created_at ON regulatory_scrape_jobs (created_at DESC)",
        "DROP INDEX IF EXISTS idx_regulatory_scrape_jobs_created_at",
    ),
]
