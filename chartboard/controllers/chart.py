"""
Chart controller

Owns the lifecycle of one dashboard chart: resolving its source settings,
fetching data, drawing it once and updating it in place afterwards, and the
force-refresh and set-filters actions of its menu.
"""

from typing import Any, Dict, Optional
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
import logging

from ..core.config import StoreConfig, VisualizationConfig
from ..core.error_handler import ErrorHandler, create_error_context
from ..core.exceptions import DocumentLoadFailure, PersistFailure
from ..core.interfaces import ChartRendererInterface, DocumentStoreInterface
from ..core.logging_system import PerformanceMonitor, get_monitor
from ..core.models import (
    ChartDefinition, ChartHandle, ChartOptions, SeriesData, SourceSettings, serialize_filters
)
from ..core.utils import format_last_synced
from ..sources.data_client import ChartDataClient
from ..sources.registry import SourceRegistry
from ..visualization.layout import ChartAction, ChartColumn, ChartSlot
from .filters import FilterDialog, FilterDialogController, filters_changed


logger = logging.getLogger(__name__)


class ChartState(Enum):
    """Lifecycle states of a chart controller."""
    UNINITIALIZED = "uninitialized"
    RESOLVING_SETTINGS = "resolving_settings"
    READY = "ready"
    FETCHING = "fetching"
    RENDERED = "rendered"
    EDITING_FILTERS = "editing_filters"


@dataclass
class ChartServices:
    """Collaborators shared by every chart controller of a dashboard."""
    registry: SourceRegistry
    data_client: ChartDataClient
    store: DocumentStoreInterface
    renderer: ChartRendererInterface
    error_handler: ErrorHandler
    store_config: StoreConfig = field(default_factory=StoreConfig)
    viz_config: VisualizationConfig = field(default_factory=VisualizationConfig)
    monitor: Optional[PerformanceMonitor] = None

    def __post_init__(self):
        if self.monitor is None:
            self.monitor = get_monitor()


class ChartController:
    """Lifecycle controller of a single dashboard chart."""

    component = "chart_controller"

    def __init__(
        self,
        chart: ChartDefinition,
        slot: ChartSlot,
        services: ChartServices,
        dashboard_name: Optional[str] = None
    ):
        self.chart = chart
        self.slot = slot
        self.services = services
        self.dashboard_name = dashboard_name

        self.settings: Optional[SourceSettings] = None
        self.filters: Dict[str, Any] = {}
        self.data: Optional[SeriesData] = None
        self.handle: Optional[ChartHandle] = None
        self.last_synced_on: Optional[datetime] = None
        self.disposed = False
        self.filter_dialog = FilterDialogController(self)

        self._state = ChartState.UNINITIALIZED
        self._state_before_edit: Optional[ChartState] = None

    @property
    def name(self) -> str:
        return self.chart.name

    @property
    def state(self) -> ChartState:
        return self._state

    @property
    def column(self) -> Optional[ChartColumn]:
        return self.slot.column

    async def show(self) -> bool:
        """Resolve settings, lay out the chart and draw its first data.

        Returns True when the chart was rendered.
        """
        if self._state is not ChartState.UNINITIALIZED:
            logger.debug(f"Chart '{self.name}' already shown ({self._state.value})")
            return self._state is ChartState.RENDERED

        self._state = ChartState.RESOLVING_SETTINGS
        try:
            settings = await self.services.registry.resolve(self.chart.source)
            filters = self.chart.filters
        except Exception as e:
            self._state = ChartState.UNINITIALIZED
            if not self.disposed:
                self.report(e, "show")
            return False

        if self.disposed:
            return False

        self.settings = settings
        self.filters = filters
        self._prepare_column()
        self._state = ChartState.READY

        return await self._fetch_and_render(bypass_cache=False, reload=False, operation="show")

    def render(self) -> ChartHandle:
        """Draw the chart on first call; afterwards replace its data in place."""
        renderer = self.services.renderer
        if self.handle is None:
            options = ChartOptions(
                title=self.chart.chart_name,
                data=self.data,
                type=self.chart.type,
                colors=[self.chart.color or self.services.viz_config.default_color],
                axis_options={"x_is_series": self.settings.is_time_series}
            )
            self.handle = renderer.create(self.column, options)
        else:
            renderer.update(self.handle, self.data)
        return self.handle

    async def force_refresh(self) -> bool:
        """Reload the chart document and fetch bypassing the server cache."""
        if not self._accepts_actions("force_refresh"):
            return False
        return await self._fetch_and_render(bypass_cache=True, reload=True, operation="force_refresh")

    def set_filters(self) -> Optional[FilterDialog]:
        """Open the filter dialog seeded with the applied filters."""
        if not self._accepts_actions("set_filters"):
            return None
        self._state_before_edit = self._state
        self._state = ChartState.EDITING_FILTERS
        return self.filter_dialog.open()

    def end_filter_edit(self) -> None:
        if self._state is ChartState.EDITING_FILTERS:
            self._state = self._state_before_edit or ChartState.READY
        self._state_before_edit = None

    async def apply_filters(self, values: Dict[str, Any]) -> bool:
        """Persist changed filters, then refresh bypassing the server cache.

        Returns True when new filters were persisted and rendered.
        """
        self.end_filter_edit()
        if self.disposed:
            return False

        if not filters_changed(self.filters, values):
            logger.info(f"Filters of chart '{self.name}' unchanged; nothing to save")
            return False

        try:
            await self._persist_filters(values)
        except PersistFailure as e:
            self.report(e, "set_filters")
            return False

        # The store now holds these filters even if the refetch fails
        self.filters = values
        logger.info(f"Saved filters of chart '{self.name}'")
        return await self._fetch_and_render(
            bypass_cache=True, reload=True, operation="set_filters", filters=values
        )

    def report(self, error: Exception, operation: str) -> None:
        context = create_error_context(
            operation,
            self.component,
            dashboard_name=self.dashboard_name,
            chart_name=self.chart.chart_name or self.name,
            source_name=self.chart.source
        )
        self.services.error_handler.report(error, context)

    def dispose(self) -> None:
        """Release the chart; results still in flight are discarded."""
        self.disposed = True
        if self.filter_dialog.dialog is not None:
            self.filter_dialog.dialog.hide()
            self.filter_dialog.dialog = None
        if self.handle is not None:
            self.services.renderer.dispose(self.handle)
            self.handle = None

    def _accepts_actions(self, operation: str) -> bool:
        if self.disposed:
            return False
        if self._state not in (ChartState.READY, ChartState.RENDERED):
            logger.warning(f"Ignoring {operation} on chart '{self.name}' while {self._state.value}")
            return False
        return True

    def _prepare_column(self) -> None:
        column = self.slot.prepare_column(self.chart.width)
        column.actions = [
            ChartAction("Set Filters", "set-filters", self.set_filters),
            ChartAction("Force Refresh", "force-refresh", self.force_refresh),
        ]

    async def _reload_chart(self) -> ChartDefinition:
        try:
            doc = await self.services.store.get_document(self.services.store_config.chart_doctype, self.name)
            return ChartDefinition.from_document(doc)
        except Exception as e:
            raise DocumentLoadFailure(
                f"Could not reload chart '{self.name}': {e}",
                error_code="CHART_RELOAD_FAILED"
            ) from e

    async def _persist_filters(self, values: Dict[str, Any]) -> None:
        store_config = self.services.store_config
        try:
            await self.services.store.set_field(
                store_config.chart_doctype, self.name, store_config.filters_field, serialize_filters(values)
            )
        except Exception as e:
            raise PersistFailure(
                f"Could not save filters of chart '{self.name}': {e}",
                error_code="FILTER_PERSIST_FAILED"
            ) from e

    async def _fetch_and_render(
        self,
        bypass_cache: bool,
        reload: bool,
        operation: str,
        filters: Optional[Dict[str, Any]] = None
    ) -> bool:
        previous = self._state
        self._state = ChartState.FETCHING
        monitor = self.services.monitor

        try:
            chart = await self._reload_chart() if reload else self.chart
            if filters is None:
                filters = chart.filters
            with monitor.timer("fetch", self.component, chart=self.name, source=chart.source):
                data = await self.services.data_client.fetch(self.settings, self.name, filters, bypass_cache)
        except Exception as e:
            self._state = previous
            if not self.disposed:
                self.report(e, operation)
            return False

        if self.disposed:
            logger.debug(f"Discarding {operation} result of disposed chart '{self.name}'")
            return False

        self.chart = chart
        self.filters = filters
        self.data = data
        self._update_last_synced()
        self.render()
        self._state = ChartState.RENDERED
        return True

    def _update_last_synced(self) -> None:
        self.last_synced_on = self.chart.last_synced_on
        if self.column is not None:
            self.column.last_synced_text = format_last_synced(self.last_synced_on)
