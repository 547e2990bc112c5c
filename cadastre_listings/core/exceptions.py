"""Exception hierarchy for the listings core."""


class CadastreListingsError(Exception):
    """Base exception for all cadastre-listings errors."""


class SourceFetchError(CadastreListingsError):
    """Raised by a record source when a fetch fails or times out."""

    def __init__(self, source: str, message: str):
        self.source = source
        super().__init__(f"{source}: {message}")


class InvalidQueryError(CadastreListingsError, ValueError):
    """Raised for unsupported sort options, filter keys or limits."""
