"""Health checks for the backing data file."""

from cities_api.logging_config import logger
from cities_api.models.health import ServiceStatus
from cities_api.store.store import FileBasedStore


def is_store_available(store: FileBasedStore) -> ServiceStatus:
    """Check that the backing file can be read.

    Returns:
        ServiceStatus.available when the file is readable, else not_available.
    """
    if store.is_available():
        return ServiceStatus.available
    logger.error("STORE UNAVAILABLE", path=str(store.path))
    return ServiceStatus.not_available
