"""
Main application entry point for the Chartboard dashboard system.

    python -m chartboard.main <route> [--config chartboard.json] [--output-dir dashboards]
"""

import argparse
import asyncio
import logging
import re
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from .controllers.dashboard import DashboardController
from .core.config import ConfigurationManager, SystemConfig
from .core.database import DatabaseManager
from .core.error_handler import ErrorHandler, LoggingNotifier
from .core.exceptions import ConfigurationError
from .core.repository import SQLAlchemyDocumentStore
from .core.utils import setup_logging
from .sources.data_client import ChartDataClient
from .sources.registry import SourceRegistry
from .sources.rpc import HTTPRPCClient
from .visualization.layout import DashboardPage
from .visualization.renderer import PlotlyChartRenderer


@dataclass
class Application:
    """Wired collaborators of a running dashboard application."""
    config: SystemConfig
    database: DatabaseManager
    store: SQLAlchemyDocumentStore
    rpc: HTTPRPCClient
    registry: SourceRegistry
    renderer: PlotlyChartRenderer
    error_handler: ErrorHandler
    page: DashboardPage
    dashboard: DashboardController

    def close(self) -> None:
        self.dashboard.dispose()
        self.rpc.close()


def initialize_application(config_file: Optional[str] = None):
    """Initialize the application with configuration and logging."""
    from dotenv import load_dotenv

    load_dotenv()

    config_manager = ConfigurationManager(config_file)

    logger = setup_logging(
        log_level=config_manager.config.log_level,
        log_file=config_manager.config.log_file
    )

    validation_result = config_manager.validate_config()
    if not validation_result.is_valid:
        logger.error("Configuration validation failed:")
        for error in validation_result.errors:
            logger.error(f"  - {error}")
        raise ConfigurationError("Invalid configuration", context={"errors": validation_result.errors})

    for warning in validation_result.warnings:
        logger.warning(f"Configuration warning: {warning}")

    logger.info("Chartboard initialized")
    return logger, config_manager


def build_application(config: SystemConfig) -> Application:
    """Wire store, transports, registry, renderer and controllers."""
    database = DatabaseManager(config.store.database_url, echo=config.store.echo)
    database.create_tables()
    store = SQLAlchemyDocumentStore(database.get_session, config.store)

    rpc = HTTPRPCClient(config.rpc)
    registry = SourceRegistry(rpc, config.rpc)
    renderer = PlotlyChartRenderer(config.visualization)
    error_handler = ErrorHandler(LoggingNotifier())
    page = DashboardPage()

    dashboard = DashboardController(
        page=page,
        store=store,
        registry=registry,
        data_client=ChartDataClient(rpc),
        renderer=renderer,
        error_handler=error_handler,
        config=config
    )

    return Application(
        config=config,
        database=database,
        store=store,
        rpc=rpc,
        registry=registry,
        renderer=renderer,
        error_handler=error_handler,
        page=page,
        dashboard=dashboard
    )


def chart_filename(chart_name: str) -> str:
    slug = re.sub(r"[^A-Za-z0-9]+", "-", chart_name).strip("-").lower()
    return f"{slug or 'chart'}.html"


async def render_dashboard(app: Application, route: str, output_dir: Optional[str] = None) -> List[Path]:
    """Show a dashboard and export each rendered chart as an HTML file."""
    logger = logging.getLogger(__name__)
    await app.dashboard.show(route)

    target = Path(output_dir or app.config.visualization.output_directory)
    target.mkdir(parents=True, exist_ok=True)

    written = []
    for chart in app.dashboard.charts:
        if chart.handle is None:
            logger.warning(f"Chart '{chart.name}' was not rendered; skipping export")
            continue
        path = target / chart_filename(chart.chart.chart_name or chart.name)
        app.renderer.write_html(chart.handle, str(path))
        written.append(path)
        logger.info(f"Wrote {path}")

    return written


def main(argv: Optional[List[str]] = None) -> int:
    """Main application function."""
    parser = argparse.ArgumentParser(description="Render a dashboard's charts to HTML")
    parser.add_argument("route", help="Dashboard route, e.g. 'dashboard/Sales'")
    parser.add_argument("--config", default=None, help="Configuration file (default: chartboard.json)")
    parser.add_argument("--output-dir", default=None, help="Directory for the exported charts")
    args = parser.parse_args(argv)

    try:
        logger, config_manager = initialize_application(args.config)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    app = build_application(config_manager.config)
    try:
        written = asyncio.run(render_dashboard(app, args.route, args.output_dir))
        loaded = app.dashboard.dashboard is not None
        expected = len(app.dashboard.charts)
    finally:
        app.close()

    logger.info(f"Exported {len(written)} of {expected} charts")
    return 0 if loaded and len(written) == expected else 1


if __name__ == "__main__":
    sys.exit(main())
