"""
Process-wide registry of data source settings.

Settings are loaded lazily, once per source, and kept for the lifetime of
the process. Callers that ask for a source while its load is in flight join
that load instead of issuing another remote call; a failed load is shared by
every joined caller and is not cached.
"""

import asyncio
import logging
from typing import Dict, Optional

from ..core.config import RPCConfig
from ..core.exceptions import SettingsLoadFailure
from ..core.interfaces import RPCClientInterface
from ..core.logging_system import MetricsCollector, get_metrics
from ..core.models import SourceSettings


logger = logging.getLogger(__name__)


class SourceRegistry:
    """Memoized, single-flight loader of ``SourceSettings``."""

    def __init__(
        self,
        rpc: RPCClientInterface,
        config: Optional[RPCConfig] = None,
        metrics: Optional[MetricsCollector] = None
    ):
        self.rpc = rpc
        self.config = config or RPCConfig()
        self.metrics = metrics or get_metrics()
        self._sources: Dict[str, SourceSettings] = {}
        self._pending: Dict[str, asyncio.Task] = {}

    def register(self, source_id: str, settings: SourceSettings) -> None:
        """Register settings for a source without a remote load."""
        self._sources[source_id] = settings
        logger.debug(f"Registered source '{source_id}'")

    def get(self, source_id: str) -> Optional[SourceSettings]:
        return self._sources.get(source_id)

    def is_loaded(self, source_id: str) -> bool:
        return source_id in self._sources

    def is_loading(self, source_id: str) -> bool:
        return source_id in self._pending

    async def resolve(self, source_id: str) -> SourceSettings:
        """Return the settings for a source, loading them on first use."""
        settings = self._sources.get(source_id)
        if settings is not None:
            return settings

        pending = self._pending.get(source_id)
        if pending is None:
            pending = asyncio.ensure_future(self._load(source_id))
            self._pending[source_id] = pending
        else:
            logger.debug(f"Joining in-flight settings load for '{source_id}'")

        # A cancelled caller must not cancel the load shared with other callers
        return await asyncio.shield(pending)

    async def _load(self, source_id: str) -> SourceSettings:
        try:
            self.metrics.increment_counter("source_registry.remote_loads", tags={"source": source_id})
            logger.info(f"Loading settings for source '{source_id}'")
            try:
                descriptor = await self.rpc.call(self.config.settings_method, {"source_name": source_id})
                settings = SourceSettings.from_dict(source_id, descriptor)
            except Exception as e:
                raise SettingsLoadFailure(
                    f"Could not load settings for source '{source_id}': {e}",
                    error_code="SETTINGS_LOAD_FAILED",
                    context={"source_name": source_id}
                ) from e

            self._sources[source_id] = settings
            return settings
        finally:
            self._pending.pop(source_id, None)
