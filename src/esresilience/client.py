"""
Public facade over an Elasticsearch-compatible cluster.

Every method is a coroutine that settles once: it returns the shaped result
after however many transparent retries the cluster's overload required, or
raises a single DocStoreError describing the fatal failure.
"""

from collections.abc import Mapping, Sequence
from typing import Any

from elasticsearch import NotFoundError

from esresilience.config.settings import DocStoreSettings
from esresilience.core.bulk import BulkWriteEngine
from esresilience.core.response import as_mapping, payload
from esresilience.core.retry.classifier import parse_error
from esresilience.core.retry.manager import RetryManager
from esresilience.core.retry.policy import BackoffTimer, RetryPolicy, SleepFunc
from esresilience.core.retry.throttle import ThrottledLogger
from esresilience.core.search import SearchEngine
from esresilience.exceptions import DocStoreError, IndexNotFoundError, TemplateError
from esresilience.query import build_query, check_version, verify_index, with_size
from esresilience.utils.logging import get_logger

logger = get_logger("esresilience.client")

WINDOW_WARNING = (
    "max_result_window for index: {name} is set at {size}. On very large indices it is possible that "
    "a slice can not be divided to stay below this limit. If that occurs an error will be thrown by "
    "Elasticsearch and the slice can not be processed. Increasing max_result_window in the "
    "Elasticsearch index settings will resolve the problem."
)


class DocStore:
    """
    Resilient CRUD, bulk and search access to a document cluster.

    Examples:
        >>> from esresilience import DocStore, DocStoreSettings, create_client
        >>> settings = DocStoreSettings(index="logs")
        >>> store = DocStore(create_client(settings), settings)
        >>> docs = await store.search({"index": "logs", "q": "level:error"})
        >>> await store.bulk_send([{"index": {"_index": "logs"}}, {"msg": "hello"}])
    """

    def __init__(
        self,
        client: Any,
        settings: DocStoreSettings | None = None,
        *,
        policy: RetryPolicy | None = None,
        warning: ThrottledLogger | None = None,
        sleep: SleepFunc | None = None,
    ):
        """
        Initialize DocStore.

        Args:
            client: Transport shaped like elasticsearch.AsyncElasticsearch
            settings: Docstore settings (default: DocStoreSettings())
            policy: Backoff policy (default: ``settings.retry``)
            warning: Throttled bulk overload warning (default: process-wide one)
            sleep: Sleep function for backoff delays (default: asyncio.sleep)
        """
        self.client = client
        self.settings = settings or DocStoreSettings()
        self.manager = RetryManager(policy or self.settings.retry, BackoffTimer(sleep))
        self._bulk = BulkWriteEngine(client, self.manager, warning)
        self._search = SearchEngine(client, self.manager)

    async def close(self) -> None:
        await self.client.close()

    async def __aenter__(self) -> "DocStore":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # --- Search ----------------------------------------------------------------

    async def count(self, query: Mapping[str, Any]) -> int | None:
        """Number of documents matching ``query``; None when totals are not tracked."""
        response = as_mapping(await self._search.search(with_size(query, 0)))
        total = (response.get("hits") or {}).get("total")
        # 7.x+ reports {"value": n, "relation": "eq"}
        if isinstance(total, Mapping):
            return total.get("value")
        return total

    async def search(self, query: Mapping[str, Any]) -> Any:
        """
        Run a search.

        Returns:
            The full response when ``full_response`` is configured, otherwise
            the list of ``_source`` documents
        """
        response = await self._search.search(query)
        if self.settings.full_response:
            return response
        hits = (as_mapping(response).get("hits") or {}).get("hits") or []
        # Hits fetched with _source disabled or stored_fields carry no source
        return [hit.get("_source") for hit in hits]

    def build_query(self, op_config: Mapping[str, Any] | None, msg: Mapping[str, Any]) -> dict[str, Any]:
        """Build search arguments for a slice; ``op_config`` defaults to the settings."""
        if op_config is None:
            op_config = {
                "index": self.settings.index,
                "date_field_name": self.settings.date_field_name,
                "query": self.settings.query,
                "fields": self.settings.fields,
            }
        return build_query(op_config, msg)

    # --- Documents -------------------------------------------------------------

    async def get(self, query: Mapping[str, Any]) -> Any:
        """Fetch a document and return its ``_source``."""
        response = await self.manager.execute("get", lambda: self.client.get(**query))
        return as_mapping(response)["_source"]

    async def index(self, query: Mapping[str, Any]) -> Any:
        """Index a document and return the cluster's acknowledgement."""
        return payload(await self.manager.execute("index", lambda: self.client.index(**query)))

    async def index_with_id(self, query: Mapping[str, Any]) -> Any:
        """Index a document under a caller-chosen id and return the document."""
        await self.manager.execute("index_with_id", lambda: self.client.index(**query))
        return _document(query)

    async def create(self, query: Mapping[str, Any]) -> Any:
        """Create a document that must not exist yet and return the document."""
        await self.manager.execute("create", lambda: self.client.create(**query))
        return _document(query)

    async def update(self, query: Mapping[str, Any]) -> Any:
        """Apply a partial update and return the fragment that was applied."""
        await self.manager.execute("update", lambda: self.client.update(**query))
        body = query.get("body") or {}
        return body.get("doc", query.get("doc"))

    async def remove(self, query: Mapping[str, Any]) -> bool:
        """Delete a document; returns whether it existed."""

        async def delete():
            try:
                return await self.client.delete(**query)
            except NotFoundError as e:
                # A missing document answers 404 with a normal delete body
                body = as_mapping(getattr(e, "body", None))
                if body.get("result") == "not_found" or body.get("found") is False:
                    return body
                raise

        response = as_mapping(await self.manager.execute("remove", delete))
        if "found" in response:
            return bool(response["found"])
        return response.get("result") == "deleted"

    async def bulk_send(self, body: Sequence[Any]) -> Any:
        """Write alternating action/payload entries, resubmitting overload-rejected documents."""
        return await self._bulk.send(body)

    # --- Index management ------------------------------------------------------

    async def index_exists(self, query: Mapping[str, Any]) -> Any:
        return payload(await self.manager.execute("index_exists", lambda: self.client.indices.exists(**query)))

    async def index_create(self, query: Mapping[str, Any]) -> Any:
        return payload(await self.manager.execute("index_create", lambda: self.client.indices.create(**query)))

    async def index_refresh(self, query: Mapping[str, Any]) -> Any:
        return payload(await self.manager.execute("index_refresh", lambda: self.client.indices.refresh(**query)))

    async def index_recovery(self, query: Mapping[str, Any]) -> Any:
        return payload(await self.manager.execute("index_recovery", lambda: self.client.indices.recovery(**query)))

    async def put_template(self, template: Mapping[str, Any], name: str) -> Any:
        """Store an index template."""
        try:
            return payload(await self.client.indices.put_template(name=name, body=template))
        except Exception as e:
            raise TemplateError(name, parse_error(e)) from e

    # --- Cluster ---------------------------------------------------------------

    async def version(self) -> str:
        """
        Return the cluster version, warning about max_result_window on 2.1.0+.

        Raises:
            IndexNotFoundError: The configured index does not exist
            DocStoreError: Index settings could not be read
        """
        stats = as_mapping(await self.client.cluster.stats())
        version = stats["nodes"]["versions"][0]

        if not check_version(version):
            return version

        try:
            index_settings = as_mapping(await self.client.indices.get_settings())
        except Exception as e:
            message = parse_error(e)
            logger.error(message)
            raise DocStoreError(message) from e

        check = verify_index(index_settings, self.settings.index)
        if not check.found:
            error = IndexNotFoundError(self.settings.index)
            logger.error(error.message)
            raise error

        for window in check.windows:
            logger.warning(WINDOW_WARNING.format(name=window.name, size=window.window_size))
        return version

    async def node_info(self) -> Any:
        return payload(await self.client.nodes.info())

    async def node_stats(self) -> Any:
        return payload(await self.client.nodes.stats())

    # camelCase names kept for callers written against the original API
    indexWithId = index_with_id
    putTemplate = put_template
    bulkSend = bulk_send
    nodeInfo = node_info
    nodeStats = node_stats
    buildQuery = build_query
    indexExists = index_exists
    indexCreate = index_create
    indexRefresh = index_refresh
    indexRecovery = index_recovery


def _document(query: Mapping[str, Any]) -> Any:
    """The document a write request carries (``body`` or 8.x ``document``)."""
    if "body" in query:
        return query["body"]
    return query.get("document")
