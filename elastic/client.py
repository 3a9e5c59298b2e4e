"""Elasticsearch client factory and health checking.

Every store operation builds its own short-lived client through es_client();
no connection object is held between calls.
"""
from __future__ import annotations
from typing import Callable

from elasticsearch import Elasticsearch

from core.config import config as cfg
from core.errors import ConfigurationError
from core.logger import get_logger

log = get_logger("elastic/client")

ClientFactory = Callable[[], Elasticsearch]


def es_client() -> Elasticsearch:
    """
    Create an Elasticsearch client from the current configuration.

    Returns:
        Elasticsearch: Configured Elasticsearch client

    Raises:
        ConfigurationError: If the endpoint is missing or the client cannot be built
    """
    endpoint = (cfg.elastic_cloud_endpoint or "").strip()
    if not endpoint:
        error_msg = "ELASTIC_CLOUD_ENDPOINT is not configured"
        log.error(error_msg)
        raise ConfigurationError(error_msg)

    kwargs = {"request_timeout": cfg.elastic_request_timeout}
    if cfg.elastic_api_key:
        kwargs["api_key"] = cfg.elastic_api_key

    try:
        log.debug(f"Creating Elasticsearch client for endpoint: {endpoint}")
        return Elasticsearch(endpoint, **kwargs)
    except Exception as e:
        log.exception(f"Failed to create Elasticsearch client: {e}")
        raise ConfigurationError(f"Failed to create Elasticsearch client: {e}") from e


def health_check(client_factory: ClientFactory = es_client) -> bool:
    """
    Check if Elasticsearch cluster is reachable and healthy.

    Returns:
        bool: True if cluster status is green or yellow, False otherwise
    """
    try:
        client = client_factory()
        health = client.cluster.health()
        status = health.get("status", "unknown")

        log.debug(f"Elasticsearch cluster health: {status}")

        return status in ("green", "yellow")

    except Exception as e:
        log.error(f"Elasticsearch health check failed: {e}")
        return False
