"""
Chart renderer built on Plotly.

A chart is drawn once into its column and afterwards only has its trace
data replaced, so the figure object (and, through ``uirevision``, the user's
zoom and legend state) survives data refreshes.
"""

from typing import Any, Dict, List, Optional
from itertools import cycle
import logging

import pandas as pd
import plotly.graph_objects as go
from plotly.basedatatypes import BaseTraceType

from ..core.config import VisualizationConfig
from ..core.exceptions import ConfigurationError
from ..core.interfaces import ChartRendererInterface
from ..core.models import ChartHandle, ChartOptions, ChartType, SeriesData


logger = logging.getLogger(__name__)


CHART_TYPE_MAP: Dict[ChartType, str] = {
    ChartType.LINE: "line",
    ChartType.BAR: "bar",
    ChartType.PIE: "pie",
    ChartType.PERCENTAGE: "percentage",
}


def renderer_type(chart_type: ChartType) -> str:
    """Renderer type tag for a chart type."""
    try:
        return CHART_TYPE_MAP[ChartType.parse(chart_type)]
    except KeyError:
        raise ConfigurationError(f"No renderer mapping for chart type {chart_type}", error_code="UNMAPPED_TYPE")


class PlotlyChartRenderer(ChartRendererInterface):
    """Renders dashboard charts as Plotly figures."""

    def __init__(self, config: Optional[VisualizationConfig] = None):
        self.config = config or VisualizationConfig()

    def create(self, container: Any, options: ChartOptions) -> ChartHandle:
        handle = ChartHandle(options=options, container=container)
        figure = go.Figure(data=self._build_traces(options, options.data))
        figure.update_layout(self._layout(options, handle.chart_id))
        handle.figure = figure

        if container is not None:
            container.chart = handle

        logger.debug(f"Created {renderer_type(options.type)} chart '{options.title}'")
        return handle

    def update(self, handle: ChartHandle, data: SeriesData) -> None:
        if handle.disposed:
            raise ValueError(f"Chart {handle.chart_id} has been disposed")

        figure = handle.figure
        traces = self._trace_values(handle.options, data)

        if len(figure.data) == len(traces):
            with figure.batch_update():
                for trace, values in zip(figure.data, traces):
                    trace.update(values)
        else:
            # Series were added or removed; the figure itself is kept
            figure.data = ()
            new_traces = self._build_traces(handle.options, data)
            if new_traces:
                figure.add_traces(new_traces)

        handle.options.data = data
        handle.update_count += 1

    def dispose(self, handle: ChartHandle) -> None:
        handle.disposed = True
        handle.figure = None
        if handle.container is not None and getattr(handle.container, "chart", None) is handle:
            handle.container.chart = None

    def to_html(self, handle: ChartHandle, full_html: bool = False) -> str:
        return handle.figure.to_html(full_html=full_html, include_plotlyjs=self.config.include_plotlyjs)

    def write_html(self, handle: ChartHandle, path: str) -> None:
        handle.figure.write_html(path, include_plotlyjs=self.config.include_plotlyjs)

    def resolve_color(self, color: str) -> str:
        """Map a palette color name to its hex value; hex values pass through."""
        return self.config.color_palette.get(color, color)

    def _colors(self, options: ChartOptions, count: int) -> List[str]:
        named = [self.resolve_color(c) for c in options.colors if c]
        palette = cycle(named + [c for c in self.config.color_palette.values() if c not in named])
        return [next(palette) for _ in range(count)]

    def _x_values(self, options: ChartOptions, data: SeriesData) -> List[Any]:
        if options.axis_options.get("x_is_series"):
            return list(pd.to_datetime(pd.Series(data.labels), errors="coerce"))
        return list(data.labels)

    def _trace_values(self, options: ChartOptions, data: SeriesData) -> List[Dict[str, Any]]:
        """Plain trace properties (no styling) for the given data."""
        kind = renderer_type(options.type)
        frame = data.to_frame()

        if kind == "pie":
            values = frame.iloc[:, 0].fillna(0).tolist() if len(frame.columns) else []
            return [{"labels": list(data.labels), "values": values}]

        if kind == "percentage":
            totals = frame.fillna(0).sum(axis=1)
            grand_total = totals.sum() or 1
            return [
                {"x": [float(total / grand_total * 100)], "y": [""], "name": str(label)}
                for label, total in totals.items()
            ]

        x_values = self._x_values(options, data)
        return [
            {"x": x_values, "y": frame[column].tolist(), "name": column}
            for column in frame.columns
        ]

    def _build_traces(self, options: ChartOptions, data: SeriesData) -> List[BaseTraceType]:
        kind = renderer_type(options.type)
        values = self._trace_values(options, data)
        colors = self._colors(options, max(len(values), len(data.labels), 1))

        if kind == "pie":
            return [go.Pie(marker={"colors": colors}, **values[0])]

        if kind == "percentage":
            return [
                go.Bar(orientation="h", marker_color=color, hovertemplate="%{x:.1f}%", **trace)
                for trace, color in zip(values, colors)
            ]

        if kind == "bar":
            return [go.Bar(marker_color=color, **trace) for trace, color in zip(values, colors)]

        return [
            go.Scatter(mode="lines+markers", line={"color": color}, **trace)
            for trace, color in zip(values, colors)
        ]

    def _layout(self, options: ChartOptions, revision: str) -> Dict[str, Any]:
        layout = {
            "title": {"text": options.title},
            "height": self.config.chart_height,
            "uirevision": revision,
            "margin": {"l": 40, "r": 20, "t": 50, "b": 40},
        }
        kind = renderer_type(options.type)
        if kind == "percentage":
            layout.update({"barmode": "stack", "xaxis": {"range": [0, 100], "ticksuffix": "%"},
                           "yaxis": {"visible": False}})
        elif kind != "pie":
            layout["xaxis"] = {"type": "date" if options.axis_options.get("x_is_series") else "category"}
        return layout
