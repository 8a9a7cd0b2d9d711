"""
Tests for the chart controller lifecycle: first render, force refresh,
filter edits, failure handling and disposal.
"""

import asyncio
import json
from datetime import datetime, timedelta

import pytest
from unittest.mock import AsyncMock, patch

from chartboard.controllers.chart import ChartController, ChartState
from chartboard.core.exceptions import RepositoryError
from chartboard.core.models import ChartDefinition, ChartType, FieldDescriptor, SourceSettings
from chartboard.visualization.layout import ChartSlot


async def wait_for_state(chart, state, attempts=100):
    for _ in range(attempts):
        if chart.state is state:
            return
        await asyncio.sleep(0)
    raise AssertionError(f"chart never reached {state}, still {chart.state}")


@pytest.fixture
def make_chart(seeded_store, services):
    def factory(name="Sales Trend"):
        doc = seeded_store.load_document("Dashboard Chart", name)
        return ChartController(ChartDefinition.from_document(doc), ChartSlot(), services, dashboard_name="Sales")
    return factory


@pytest.mark.asyncio
class TestChartShow:
    """Tests for the first display of a chart"""

    async def test_show_renders_with_cached_data(self, make_chart, backend):
        chart = make_chart()

        assert await chart.show() is True

        assert chart.state is ChartState.RENDERED
        assert backend.settings_calls == ["Sales"]
        assert backend.data_calls == [{
            "method": "sales.get_data",
            "chart_name": "Sales Trend",
            "filters": {"region": "EMEA"},
            "refresh": False
        }]
        assert chart.filters == {"region": "EMEA"}
        assert chart.data.labels == ["2024-01-01", "2024-02-01", "2024-03-01"]

    async def test_show_lays_out_column_and_actions(self, make_chart):
        chart = make_chart()
        await chart.show()

        column = chart.column
        assert column.columns == 12
        assert column.css_class == "col-sm-12 chart-column-container"
        assert [a.label for a in column.actions] == ["Set Filters", "Force Refresh"]
        assert [a.action for a in column.actions] == ["set-filters", "force-refresh"]
        assert column.last_synced_text == "Last synced 5 minutes ago"

    async def test_half_width_chart_takes_six_columns(self, make_chart):
        chart = make_chart("Orders by Region")
        await chart.show()

        assert chart.column.columns == 6
        assert chart.column.last_synced_text == "Last synced never"

    async def test_first_render_creates_handle(self, make_chart):
        chart = make_chart()
        await chart.show()

        handle = chart.handle
        assert handle is not None
        assert handle.update_count == 0
        assert handle.options.title == "Sales Trend"
        assert handle.options.type is ChartType.LINE
        assert handle.options.colors == ["blue"]
        assert handle.options.axis_options == {"x_is_series": True}
        assert chart.column.chart is handle
        assert len(handle.figure.data) == 2

    async def test_default_color_when_chart_has_none(self, make_chart):
        chart = make_chart("Orders by Region")
        await chart.show()

        assert chart.handle.options.colors == ["light-blue"]

    async def test_settings_failure_leaves_chart_uninitialized(self, make_chart, backend, notifier):
        backend.fail_settings.add("Sales")
        chart = make_chart()

        assert await chart.show() is False

        assert chart.state is ChartState.UNINITIALIZED
        assert chart.handle is None
        assert backend.data_calls == []
        notifier.notify_error.assert_called_once()
        assert notifier.notify_error.call_args.kwargs["title"] == "Chart 'Sales Trend'"

    async def test_fetch_failure_keeps_chart_ready(self, make_chart, backend, notifier):
        backend.fail_data.add("Sales Trend")
        chart = make_chart()

        assert await chart.show() is False

        assert chart.state is ChartState.READY
        assert chart.handle is None
        assert chart.data is None
        assert chart.column.last_synced_text == ""
        notifier.notify_error.assert_called_once()

    async def test_show_is_not_repeated(self, make_chart, backend):
        chart = make_chart()
        await chart.show()

        assert await chart.show() is True
        assert len(backend.data_calls) == 1

    async def test_fetch_is_timed(self, make_chart, monitor):
        chart = make_chart()
        await chart.show()

        stats = monitor.metrics.get_timer_stats(
            "chart_controller.fetch.duration", {"chart": "Sales Trend", "source": "Sales"}
        )
        assert stats["count"] == 1


@pytest.mark.asyncio
class TestChartForceRefresh:
    """Tests for the Force Refresh action"""

    async def test_force_refresh_bypasses_cache_and_updates_in_place(self, make_chart, backend):
        chart = make_chart()
        await chart.show()
        handle = chart.handle
        figure = handle.figure

        assert await chart.column.trigger("force-refresh") is True

        assert backend.data_calls[-1]["refresh"] is True
        assert len(backend.data_calls) == 2
        assert chart.handle is handle
        assert handle.figure is figure
        assert handle.update_count == 1
        assert list(figure.data[0].y) == [20, 40, 60]
        assert chart.state is ChartState.RENDERED

    async def test_force_refresh_reloads_document(self, make_chart, seeded_store):
        chart = make_chart()
        await chart.show()

        synced = datetime.now() - timedelta(hours=3)
        seeded_store.update_field("Dashboard Chart", "Sales Trend", "last_synced_on", synced)
        seeded_store.update_field("Dashboard Chart", "Sales Trend", "filters_json", '{"region": "APAC"}')

        await chart.force_refresh()

        assert chart.last_synced_on == synced
        assert chart.column.last_synced_text == "Last synced 3 hours ago"
        assert chart.filters == {"region": "APAC"}

    async def test_failed_refresh_keeps_previous_render(self, make_chart, backend, notifier):
        chart = make_chart()
        await chart.show()
        data = chart.data
        text = chart.column.last_synced_text
        backend.fail_data.add("Sales Trend")

        assert await chart.force_refresh() is False

        assert chart.state is ChartState.RENDERED
        assert chart.data is data
        assert chart.column.last_synced_text == text
        assert chart.handle.update_count == 0
        notifier.notify_error.assert_called_once()
        assert "query failed" in notifier.notify_error.call_args.kwargs["message"]

    async def test_failed_reload_skips_fetch(self, make_chart, backend, services, notifier):
        chart = make_chart()
        await chart.show()

        with patch.object(services.store, "get_document", AsyncMock(side_effect=RepositoryError("locked"))):
            assert await chart.force_refresh() is False

        assert len(backend.data_calls) == 1
        assert chart.state is ChartState.RENDERED
        details = notifier.notify_error.call_args.kwargs["details"]
        assert details["code"] == "CHART_RELOAD_FAILED"

    async def test_action_during_fetch_is_ignored(self, make_chart, backend):
        chart = make_chart()
        await chart.show()
        backend.data_gate = asyncio.Event()

        task = asyncio.ensure_future(chart.force_refresh())
        await wait_for_state(chart, ChartState.FETCHING)

        assert await chart.force_refresh() is False
        assert chart.set_filters() is None

        backend.data_gate.set()
        assert await task is True
        assert len(backend.data_calls) == 2

    async def test_force_refresh_before_show_is_ignored(self, make_chart, backend):
        chart = make_chart()

        assert await chart.force_refresh() is False
        assert backend.data_calls == []


@pytest.mark.asyncio
class TestChartFilters:
    """Tests for the Set Filters action"""

    async def test_dialog_is_seeded_with_applied_filters(self, make_chart):
        chart = make_chart()
        await chart.show()

        dialog = chart.column.trigger("set-filters")

        assert chart.state is ChartState.EDITING_FILTERS
        assert dialog.title == "Set Filters"
        assert dialog.is_open
        assert [f.fieldname for f in dialog.fields] == ["region", "year"]
        assert dialog.values == {"region": "EMEA", "year": None}
        assert dialog.primary_action_label is None

    async def test_changed_filters_are_persisted_then_refreshed(self, make_chart, backend, seeded_store):
        chart = make_chart()
        await chart.show()
        handle = chart.handle

        dialog = chart.set_filters()
        dialog.set_value("region", "APAC")
        assert dialog.primary_action_label == "Save Filters"

        with patch.object(seeded_store, "set_field", wraps=seeded_store.set_field) as set_field:
            assert await dialog.primary_action() is True

        set_field.assert_called_once_with(
            "Dashboard Chart", "Sales Trend", "filters_json", json.dumps({"region": "APAC", "year": None})
        )
        assert len(backend.data_calls) == 2
        assert backend.data_calls[-1] == {
            "method": "sales.get_data",
            "chart_name": "Sales Trend",
            "filters": {"region": "APAC", "year": None},
            "refresh": True
        }
        assert chart.filters == {"region": "APAC", "year": None}
        assert seeded_store.load_document("Dashboard Chart", "Sales Trend")["filters_json"] == \
            json.dumps({"region": "APAC", "year": None})
        assert chart.handle is handle
        assert handle.update_count == 1
        assert chart.state is ChartState.RENDERED
        assert not dialog.is_open

    async def test_unchanged_filters_make_no_calls(self, make_chart, backend, seeded_store):
        chart = make_chart()
        await chart.show()

        dialog = chart.set_filters()
        dialog.set_value("region", "EMEA")
        assert dialog.primary_action_label == "Save Filters"

        with patch.object(seeded_store, "set_field", wraps=seeded_store.set_field) as set_field:
            assert await dialog.primary_action() is False

        set_field.assert_not_called()
        assert len(backend.data_calls) == 1
        assert chart.state is ChartState.RENDERED
        assert not dialog.is_open

    async def test_persist_failure_keeps_filters(self, make_chart, backend, services, notifier):
        chart = make_chart()
        await chart.show()
        dialog = chart.set_filters()
        dialog.set_value("region", "AMER")

        with patch.object(services.store, "set_field", AsyncMock(side_effect=RepositoryError("disk full"))):
            assert await dialog.primary_action() is False

        assert chart.filters == {"region": "EMEA"}
        assert len(backend.data_calls) == 1
        assert chart.state is ChartState.RENDERED
        details = notifier.notify_error.call_args.kwargs["details"]
        assert details["code"] == "FILTER_PERSIST_FAILED"

    async def test_fetch_failure_after_persist_keeps_saved_filters(self, make_chart, backend, seeded_store, notifier):
        chart = make_chart()
        await chart.show()
        data = chart.data
        dialog = chart.set_filters()
        dialog.set_value("region", "APAC")
        backend.fail_data.add("Sales Trend")

        assert await dialog.primary_action() is False

        assert chart.filters == {"region": "APAC", "year": None}
        assert chart.data is data
        assert chart.state is ChartState.RENDERED
        notifier.notify_error.assert_called_once()

        backend.fail_data.clear()
        dialog = chart.set_filters()
        assert dialog.values == {"region": "APAC", "year": None}
        dialog.set_value("region", "APAC")

        with patch.object(seeded_store, "set_field", wraps=seeded_store.set_field) as set_field:
            assert await dialog.primary_action() is False

        set_field.assert_not_called()
        assert len(backend.data_calls) == 2

    async def test_invalid_value_keeps_dialog_open(self, make_chart, notifier):
        chart = make_chart()
        await chart.show()
        dialog = chart.set_filters()
        dialog.set_value("year", "last year")

        assert await dialog.primary_action() is False

        assert dialog.is_open
        assert chart.state is ChartState.EDITING_FILTERS
        notifier.notify_error.assert_called_once()

        chart.filter_dialog.cancel()
        assert chart.state is ChartState.RENDERED
        assert not dialog.is_open

    async def test_cancel_changes_nothing(self, make_chart, backend):
        chart = make_chart()
        await chart.show()
        dialog = chart.set_filters()
        dialog.set_value("region", "APAC")

        chart.filter_dialog.cancel()

        assert chart.filters == {"region": "EMEA"}
        assert chart.state is ChartState.RENDERED
        assert len(backend.data_calls) == 1

    async def test_chart_without_filters_makes_no_calls(self, make_chart, backend, seeded_store):
        chart = make_chart("Orders by Region")
        await chart.show()
        assert chart.filters == {}

        dialog = chart.set_filters()
        dialog.set_value("year", "2024")

        with patch.object(seeded_store, "set_field", wraps=seeded_store.set_field) as set_field:
            assert await dialog.primary_action() is False

        set_field.assert_not_called()
        assert chart.filters == {}
        assert len(backend.data_calls) == 1
        assert chart.state is ChartState.RENDERED

    async def test_field_default_is_not_a_change(self, make_chart, backend, seeded_store):
        chart = make_chart()
        await chart.show()
        chart.settings = SourceSettings(
            source_name="Sales",
            method_path="sales.get_data",
            is_time_series=True,
            filters=[
                FieldDescriptor(fieldname="region", fieldtype="Select", label="Region", options="EMEA\nAPAC"),
                FieldDescriptor(fieldname="year", fieldtype="Int", label="Year", default=2023),
            ]
        )

        dialog = chart.set_filters()
        assert dialog.values == {"region": "EMEA", "year": 2023}
        dialog.set_value("region", "EMEA")

        with patch.object(seeded_store, "set_field", wraps=seeded_store.set_field) as set_field:
            assert await dialog.primary_action() is False

        set_field.assert_not_called()
        assert len(backend.data_calls) == 1


@pytest.mark.asyncio
class TestChartDispose:
    """Tests for chart disposal"""

    async def test_dispose_releases_handle(self, make_chart):
        chart = make_chart()
        await chart.show()
        handle = chart.handle

        chart.dispose()

        assert handle.disposed
        assert chart.handle is None
        assert chart.disposed

    async def test_late_result_after_dispose_is_discarded(self, make_chart, backend, notifier):
        backend.data_gate = asyncio.Event()
        chart = make_chart()

        task = asyncio.ensure_future(chart.show())
        await wait_for_state(chart, ChartState.FETCHING)
        chart.dispose()
        backend.data_gate.set()

        assert await task is False
        assert chart.handle is None
        assert chart.data is None
        notifier.notify_error.assert_not_called()

    async def test_late_failure_after_dispose_is_not_reported(self, make_chart, backend, notifier):
        backend.data_gate = asyncio.Event()
        backend.fail_data.add("Sales Trend")
        chart = make_chart()

        task = asyncio.ensure_future(chart.show())
        await wait_for_state(chart, ChartState.FETCHING)
        chart.dispose()
        backend.data_gate.set()

        assert await task is False
        notifier.notify_error.assert_not_called()

    async def test_actions_after_dispose_are_ignored(self, make_chart, backend):
        chart = make_chart()
        await chart.show()
        chart.dispose()

        assert await chart.force_refresh() is False
        assert chart.set_filters() is None
        assert len(backend.data_calls) == 1
