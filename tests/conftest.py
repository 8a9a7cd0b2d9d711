"""
Shared test fixtures for the Chartboard dashboard system.
"""

import asyncio
from datetime import datetime, timedelta
from functools import partial
from unittest.mock import Mock

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from chartboard.controllers.chart import ChartServices
from chartboard.core.config import RPCConfig
from chartboard.core.database import Base
from chartboard.core.error_handler import ErrorHandler
from chartboard.core.logging_system import LoggingSystem
from chartboard.core.repository import SQLAlchemyDocumentStore
from chartboard.sources.data_client import ChartDataClient
from chartboard.sources.registry import SourceRegistry
from chartboard.sources.rpc import LocalRPCClient
from chartboard.visualization.renderer import PlotlyChartRenderer


SETTINGS_METHOD = RPCConfig().settings_method

SALES_SETTINGS = {
    "method_path": "sales.get_data",
    "is_time_series": True,
    "filters": [
        {"fieldname": "region", "fieldtype": "Select", "label": "Region", "options": "EMEA\nAPAC\nAMER"},
        {"fieldname": "year", "fieldtype": "Int", "label": "Year"},
    ],
}

ITEMS_SETTINGS = {
    "method_path": "items.get_data",
    "filters": [],
}


class FakeBackend:
    """In-process server side: settings and data methods with call records.

    ``settings_gate`` and ``data_gate`` are asyncio events; while set to an
    unset event, calls block so tests can observe in-flight states.
    """

    def __init__(self):
        self.settings = {"Sales": SALES_SETTINGS, "Items": ITEMS_SETTINGS}
        self.settings_calls = []
        self.data_calls = []
        self.fail_settings = set()
        self.fail_data = set()
        self.settings_gate = None
        self.data_gate = None

        self.rpc = LocalRPCClient()
        self.rpc.register(SETTINGS_METHOD, self.get_settings)
        self.rpc.register("sales.get_data", partial(self.get_data, "sales.get_data"))
        self.rpc.register("items.get_data", partial(self.get_data, "items.get_data"))

    async def get_settings(self, source_name):
        self.settings_calls.append(source_name)
        await asyncio.sleep(0)
        if self.settings_gate is not None:
            await self.settings_gate.wait()
        if source_name in self.fail_settings:
            raise RuntimeError(f"settings for {source_name} unavailable")
        return self.settings[source_name]

    async def get_data(self, method, chart_name, filters, refresh):
        self.data_calls.append({"method": method, "chart_name": chart_name, "filters": filters, "refresh": refresh})
        await asyncio.sleep(0)
        if self.data_gate is not None:
            await self.data_gate.wait()
        if chart_name in self.fail_data:
            raise RuntimeError("query failed")
        calls = len(self.data_calls)
        return {
            "labels": ["2024-01-01", "2024-02-01", "2024-03-01"],
            "datasets": [
                {"name": "Revenue", "values": [10 * calls, 20 * calls, 30 * calls]},
                {"name": "Cost", "values": [5, 8, 13]},
            ],
        }


@pytest.fixture
def session_factory(tmp_path):
    """SQLite database file shared by the worker threads of the store."""
    engine = create_engine(f"sqlite:///{tmp_path / 'documents.db'}", echo=False)

    # Enable foreign key constraints for SQLite
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield SessionLocal
    engine.dispose()


@pytest.fixture
def store(session_factory):
    """Empty document store."""
    return SQLAlchemyDocumentStore(session_factory)


@pytest.fixture
def synced_on():
    return datetime.now() - timedelta(minutes=5)


@pytest.fixture
def seeded_store(store, synced_on):
    """Store holding the Sales and Operations dashboards."""
    store.save_chart(
        "Sales Trend", "Sales",
        width="Full", type="Line", color="blue",
        filters_json='{"region": "EMEA"}', last_synced_on=synced_on
    )
    store.save_chart("Orders by Region", "Sales", width="Half", type="Bar")
    store.save_chart("Top Items", "Items", width="Half", type="Pie", last_synced_on=synced_on)
    store.save_dashboard("Sales", ["Sales Trend", "Orders by Region", "Top Items"])
    store.save_dashboard("Operations", ["Top Items"])
    return store


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def notifier():
    return Mock()


@pytest.fixture
def monitor():
    return LoggingSystem().get_monitor()


@pytest.fixture
def registry(backend, monitor):
    return SourceRegistry(backend.rpc, metrics=monitor.metrics)


@pytest.fixture
def services(backend, registry, seeded_store, notifier, monitor):
    """Chart collaborators wired against the fake backend and seeded store."""
    return ChartServices(
        registry=registry,
        data_client=ChartDataClient(backend.rpc),
        store=seeded_store,
        renderer=PlotlyChartRenderer(),
        error_handler=ErrorHandler(notifier),
        monitor=monitor
    )
