"""Exceptions raised by the store and translated by the HTTP layer."""


class CityServiceError(Exception):
    """Base exception for city service failures."""
    pass


class CityNotFoundError(CityServiceError):
    """Raised when a referenced city identifier is not in the dataset."""
    pass


class StoreError(CityServiceError):
    """Raised when the backing file cannot be read."""
    pass


class StoreFormatError(StoreError):
    """Raised when the backing file is not a well-formed JSON array."""
    pass


class MissingParameterError(CityServiceError):
    """Raised when a required query parameter is absent or malformed."""
    pass
