"""Temporal client service for managing shared Temporal client state."""

from loguru import logger
from temporalio.client import Client, TLSConfig
from temporalio.contrib.pydantic import pydantic_data_converter

from src.accounts.runtime.context import get_config


class TemporalClientService:
    """Lazily connected Temporal client shared across the application.

    Workflow operations go through the ``BaseWorkflow`` class methods, which
    take the client returned by ``get_client``.
    """

    def __init__(self, max_retry_attempts: int = 3) -> None:
        self._client: Client | None = None
        self._config = get_config().temporal
        self._max_retry_attempts = max_retry_attempts

    @property
    def is_enabled(self) -> bool:
        return self._config.enabled

    async def get_client(self) -> Client:
        """Get or create the Temporal client connection.

        Raises:
            RuntimeError: If Temporal is disabled in configuration
        """
        if not self._config.enabled:
            raise RuntimeError("Temporal service is disabled in configuration")

        if self._client is None:
            self._client = await self._connect()
        return self._client

    async def _connect(self) -> Client:
        last_exception: Exception | None = None
        log = logger.bind(url=self._config.url, namespace=self._config.namespace)

        for attempt in range(1, self._max_retry_attempts + 1):
            try:
                log.info("Connecting to Temporal (attempt {})", attempt)
                client = await Client.connect(
                    self._config.url,
                    namespace=self._config.namespace,
                    tls=TLSConfig() if self._config.tls else False,
                    data_converter=pydantic_data_converter,
                )
                log.info("Connected to Temporal after {} attempt(s)", attempt)
                return client
            except Exception as e:
                last_exception = e
                log.bind(error_type=type(e).__name__).warning(
                    "Failed to connect to Temporal: {}", e
                )

        log.error("Failed to connect to Temporal after {} attempts", self._max_retry_attempts)
        raise last_exception or RuntimeError("Failed to connect to Temporal")

    async def health_check(self) -> bool:
        if not self._config.enabled:
            return False
        try:
            await self.get_client()
            return True
        except Exception as e:
            logger.bind(error_type=type(e).__name__).error(
                "Temporal health check failed: {}", e
            )
            return False

    async def close(self) -> None:
        """Drop the client reference; the SDK manages the underlying connection."""
        if self._client is not None:
            logger.info("Releasing Temporal client connection")
            self._client = None
