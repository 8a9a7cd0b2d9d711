# Dashboard, chart and filter dialog controllers

from .chart import ChartController, ChartServices, ChartState
from .dashboard import DashboardController
from .filters import FilterDialog, FilterDialogController, filters_changed

__all__ = [
    'ChartController',
    'ChartServices',
    'ChartState',
    'DashboardController',
    'FilterDialog',
    'FilterDialogController',
    'filters_changed'
]
