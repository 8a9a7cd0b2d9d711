"""
Headless dashboard layout: page, grid container, per-chart slots and columns.

The UI layer binds these objects to real widgets; controllers only talk to
them, which keeps the chart lifecycle independent of any toolkit.
"""

from typing import Any, Callable, Dict, List, Optional
from dataclasses import dataclass, field

from ..core.exceptions import ConfigurationError
from ..core.models import ChartHandle, ChartWidth


GRID_COLUMNS = 12

WIDTH_COLUMNS: Dict[ChartWidth, int] = {
    ChartWidth.HALF: 6,
    ChartWidth.FULL: 12,
}


def columns_for(width: ChartWidth) -> int:
    """Grid columns taken by a chart of the given display width."""
    try:
        return WIDTH_COLUMNS[ChartWidth.parse(width)]
    except KeyError:
        raise ConfigurationError(f"No layout defined for chart width {width}", error_code="UNMAPPED_WIDTH")


@dataclass
class ChartAction:
    """Entry of a chart's action menu."""
    label: str
    action: str
    handler: Callable[[], Any]


@dataclass
class ChartColumn:
    """Grid column holding one chart, its last-synced label and action menu."""
    columns: int
    last_synced_text: str = ""
    actions: List[ChartAction] = field(default_factory=list)
    chart: Optional[ChartHandle] = None

    @property
    def css_class(self) -> str:
        return f"col-sm-{self.columns} chart-column-container"

    def get_action(self, action: str) -> ChartAction:
        for chart_action in self.actions:
            if chart_action.action == action:
                return chart_action
        raise KeyError(action)

    def trigger(self, action: str) -> Any:
        """Invoke a menu action, as a click in the UI would."""
        return self.get_action(action).handler()


class ChartSlot:
    """Layout slot owned by one chart controller."""

    def __init__(self, index: int = 0):
        self.index = index
        self.column: Optional[ChartColumn] = None
        self.disposed = False

    def prepare_column(self, width: ChartWidth) -> ChartColumn:
        self.column = ChartColumn(columns=columns_for(width))
        return self.column

    def dispose(self) -> None:
        self.disposed = True
        self.column = None


class DashboardContainer:
    """Grid container holding the chart slots of the current dashboard."""

    def __init__(self, grid_columns: int = GRID_COLUMNS):
        self.grid_columns = grid_columns
        self.slots: List[ChartSlot] = []

    def add_slot(self) -> ChartSlot:
        slot = ChartSlot(index=len(self.slots))
        self.slots.append(slot)
        return slot

    def clear(self) -> None:
        for slot in self.slots:
            slot.dispose()
        self.slots = []


class DashboardPage:
    """Page chrome around a dashboard."""

    def __init__(self, title: str = "Dashboard"):
        self.title = title
        self.visible = False
        self.container = DashboardContainer()

    def set_title(self, title: str) -> None:
        self.title = title

    def show(self) -> None:
        self.visible = True

    def hide(self) -> None:
        self.visible = False
