"""
Elasticsearch transport factory.

The resilience layer only classifies what the transport returns; building
the client is the one place esresilience touches connection settings.
"""

from elasticsearch import AsyncElasticsearch

from esresilience.config.settings import DocStoreSettings
from esresilience.utils.logging import get_logger

logger = get_logger("esresilience.connections.elasticsearch")


def create_client(settings: DocStoreSettings) -> AsyncElasticsearch:
    """
    Create an AsyncElasticsearch client from docstore settings.

    API key authentication wins over basic auth when both are configured.
    The client's own retries are disabled; retrying is this package's job.
    """
    kwargs: dict = {
        "hosts": settings.hosts,
        "request_timeout": settings.request_timeout,
        "max_retries": 0,
        "retry_on_timeout": False,
    }

    if settings.api_key:
        kwargs["api_key"] = settings.api_key
    elif settings.username and settings.password:
        kwargs["basic_auth"] = (settings.username, settings.password)

    logger.debug(f"Creating elasticsearch client for {', '.join(settings.hosts)}")
    return AsyncElasticsearch(**kwargs)
