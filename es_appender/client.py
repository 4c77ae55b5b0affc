"""Backend client handle — owns the OpenSearch connection and target index."""

import logging
import threading

from opensearchpy import OpenSearch, RequestsHttpConnection
from opensearchpy.exceptions import OpenSearchException

from es_appender.config import ActivationError, BackendConfig, ConfigurationError

logger = logging.getLogger(__name__)


class BackendClient:
    """Wraps an Elasticsearch-compatible REST client bound to one index."""

    def __init__(self, client: OpenSearch, index_name: str):
        self._client = client
        self._index_name = index_name
        self._closed = False
        self._lock = threading.Lock()

    @property
    def index_name(self) -> str:
        return self._index_name

    @property
    def closed(self) -> bool:
        return self._closed

    def index(self, document: dict) -> dict:
        """Index one document. Transport and rejection errors propagate."""
        return self._client.index(index=self._index_name, body=document)

    def close(self):
        """Release the transport. Calling it more than once does nothing."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._client.close()
        logger.info("Closed backend client for index %s", self._index_name)


def create_client(config: BackendConfig) -> BackendClient:
    """Validate config, build the client and optionally ping the cluster.

    Raises ConfigurationError for bad settings and ActivationError when the
    cluster can't be reached.
    """
    config.validate()

    try:
        client = OpenSearch(
            hosts=[config.url],
            http_auth=(config.username, config.password),
            use_ssl=config.use_ssl,
            verify_certs=config.verify_certs,
            timeout=config.timeout,
            connection_class=RequestsHttpConnection,
        )
    except OpenSearchException as e:
        raise ConfigurationError(f"Could not configure client for {config.url}: {e}") from e

    if config.verify_connection:
        try:
            reachable = client.ping()
        except OpenSearchException as e:
            client.close()
            raise ActivationError(f"Backend at {config.url} unreachable: {e}") from e
        if not reachable:
            client.close()
            raise ActivationError(f"Backend at {config.url} did not answer ping")

    logger.info("Connected to %s (index=%s)", config.url, config.index_name)
    return BackendClient(client, config.index_name)
