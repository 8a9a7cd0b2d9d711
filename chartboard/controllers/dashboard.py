"""
Dashboard controller

Routes a dashboard name to its page, instantiates one chart controller per
chart of the dashboard document and drives them concurrently.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Sequence, Union

from ..core.config import SystemConfig
from ..core.error_handler import ErrorHandler, create_error_context
from ..core.exceptions import ConfigurationError, DocumentLoadFailure
from ..core.interfaces import ChartRendererInterface, DocumentStoreInterface
from ..core.logging_system import PerformanceMonitor
from ..core.models import ChartDefinition, DashboardDefinition
from ..core.utils import split_route
from ..sources.data_client import ChartDataClient
from ..sources.registry import SourceRegistry
from ..visualization.layout import DashboardPage
from .chart import ChartController, ChartServices


logger = logging.getLogger(__name__)


class DashboardController:
    """Shows the dashboard named by a route and owns its chart controllers."""

    component = "dashboard_controller"

    def __init__(
        self,
        page: DashboardPage,
        store: DocumentStoreInterface,
        registry: SourceRegistry,
        data_client: ChartDataClient,
        renderer: ChartRendererInterface,
        error_handler: ErrorHandler,
        config: Optional[SystemConfig] = None,
        monitor: Optional[PerformanceMonitor] = None
    ):
        self.page = page
        self.store = store
        self.error_handler = error_handler
        self.config = config or SystemConfig()
        self.services = ChartServices(
            registry=registry,
            data_client=data_client,
            store=store,
            renderer=renderer,
            error_handler=error_handler,
            store_config=self.config.store,
            viz_config=self.config.visualization,
            monitor=monitor
        )

        self.dashboard_name: Optional[str] = None
        self.dashboard: Optional[DashboardDefinition] = None
        self.charts: List[ChartController] = []
        self._generation = 0

    async def show(self, route: Union[str, Sequence[str], None]) -> Optional[DashboardDefinition]:
        """Show the dashboard named by the last route segment.

        Re-entering the dashboard already shown only makes the page visible.
        """
        segments = split_route(route)
        name = segments[-1] if segments else None

        if name is not None and name == self.dashboard_name:
            self.page.show()
            return self.dashboard

        self._generation += 1
        generation = self._generation

        self.dashboard_name = name
        self.dashboard = None
        self.page.set_title(name or "Dashboard")
        self._dispose_charts()
        self.page.show()

        if name is None:
            logger.warning("No dashboard named in route")
            return None

        try:
            doc = await self._load_dashboard(name)
        except DocumentLoadFailure as e:
            if generation != self._generation:
                return None
            # Forget the name so navigating here again retries the load
            self.dashboard_name = None
            self._report(e, "show", name)
            return None

        if generation != self._generation:
            logger.debug(f"Discarding superseded load of dashboard '{name}'")
            return None

        dashboard = self._build_definition(name, doc)
        self.dashboard = dashboard
        self.page.set_title(dashboard.name)

        container = self.page.container
        for chart in dashboard.charts:
            controller = ChartController(chart, container.add_slot(), self.services, dashboard_name=name)
            self.charts.append(controller)

        logger.info(f"Showing dashboard '{name}' with {len(self.charts)} charts")
        await asyncio.gather(*(controller.show() for controller in list(self.charts)))
        return dashboard

    async def refresh_all(self) -> List[bool]:
        """Force-refresh every chart of the current dashboard concurrently."""
        return list(await asyncio.gather(*(chart.force_refresh() for chart in list(self.charts))))

    def get_chart(self, name: str) -> Optional[ChartController]:
        for chart in self.charts:
            if chart.name == name:
                return chart
        return None

    def dispose(self) -> None:
        self._generation += 1
        self._dispose_charts()
        self.dashboard_name = None
        self.dashboard = None
        self.page.hide()

    async def _load_dashboard(self, name: str) -> Dict:
        try:
            return await self.store.get_document(self.config.store.dashboard_doctype, name)
        except Exception as e:
            raise DocumentLoadFailure(
                f"Dashboard '{name}' could not be loaded: {e}",
                error_code="DASHBOARD_LOAD_FAILED",
                context={"dashboard_name": name}
            ) from e

    def _build_definition(self, name: str, doc: Dict) -> DashboardDefinition:
        # A chart with an invalid definition is reported and skipped; its siblings still load
        charts = []
        for chart_doc in doc.get("charts") or []:
            try:
                charts.append(ChartDefinition.from_document(chart_doc))
            except (ConfigurationError, KeyError) as e:
                self._report(e, "build_dashboard", name, chart_doc.get("name"))
        return DashboardDefinition(name=doc.get("dashboard_name") or name, charts=charts)

    def _dispose_charts(self) -> None:
        for chart in self.charts:
            chart.dispose()
        self.charts = []
        self.page.container.clear()

    def _report(self, error: Exception, operation: str, dashboard_name: str, chart_name: str = None) -> None:
        context = create_error_context(
            operation, self.component, dashboard_name=dashboard_name, chart_name=chart_name
        )
        self.error_handler.report(error, context)
