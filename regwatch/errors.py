"""Exception types for the regulatory ingestion pipeline.

Most of these never escape their component: catalogue and fetch errors are
converted to empty results or tagged failures at the boundary, and
per-source persistence errors are counted rather than propagated.
"""


class RegwatchError(Exception):
    """Base class for regwatch errors."""


class CatalogueParseError(RegwatchError):
    """The source catalogue could not be read or parsed."""


class FetchError(RegwatchError):
    """A source page could not be fetched or had no usable body."""

    def __init__(
        self, url: str, kind: str, message: str, status_code: int | None = None
    ) -> None:
        super().__init__(message)
        self.url = url
        self.kind = kind
        self.status_code = status_code


class PersistenceError(RegwatchError):
    """A write to the document or job tables failed."""


class JobResolutionError(RegwatchError):
    """Scrape job filters matched no sources."""
