"""Data provider errors."""


class DataSourceError(RuntimeError):
    """Raised when a provider cannot deliver a usable dataset."""
