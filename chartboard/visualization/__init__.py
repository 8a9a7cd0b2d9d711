# Dashboard layout and chart rendering

from .layout import (
    ChartAction, ChartColumn, ChartSlot, DashboardContainer, DashboardPage,
    WIDTH_COLUMNS, columns_for
)
from .renderer import PlotlyChartRenderer, CHART_TYPE_MAP, renderer_type

__all__ = [
    'ChartAction',
    'ChartColumn',
    'ChartSlot',
    'DashboardContainer',
    'DashboardPage',
    'WIDTH_COLUMNS',
    'columns_for',
    'PlotlyChartRenderer',
    'CHART_TYPE_MAP',
    'renderer_type'
]
