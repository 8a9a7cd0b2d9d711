"""
Filter editing for dashboard charts.

``FilterDialog`` is the headless state of the "Set Filters" modal: the UI
layer renders its fields and forwards user input through ``set_value``.
``FilterDialogController`` seeds the dialog from a chart, enables saving on
the first field interaction and hands validated values back to the chart.
"""

from typing import Any, Callable, Dict, List, Optional, TYPE_CHECKING
from datetime import date, datetime
import logging

from ..core.exceptions import ValidationError
from ..core.models import FieldDescriptor

if TYPE_CHECKING:
    from .chart import ChartController


logger = logging.getLogger(__name__)


def filters_changed(current: Dict[str, Any], submitted: Dict[str, Any]) -> bool:
    """True when any applied filter has a different submitted value.

    Only the keys of the applied filters are compared; a field missing from
    them never counts as a change.
    """
    return any(submitted.get(key) != value for key, value in current.items())


def coerce_value(field: FieldDescriptor, value: Any) -> Any:
    """Convert a raw input value to the field's type."""
    if value is None or value == "":
        return None

    fieldtype = field.fieldtype
    try:
        if fieldtype == "Int":
            return int(value)
        if fieldtype == "Float":
            return float(value)
        if fieldtype == "Check":
            if isinstance(value, str):
                return 0 if value.strip().lower() in ("0", "false", "no") else 1
            return 1 if value else 0
        if fieldtype == "Date":
            if isinstance(value, datetime):
                return value.date().isoformat()
            if isinstance(value, date):
                return value.isoformat()
            return date.fromisoformat(str(value)).isoformat()
    except (TypeError, ValueError):
        raise ValidationError(
            f"Invalid value for {field.label}: {value!r}",
            error_code="INVALID_FILTER_VALUE",
            context={"fieldname": field.fieldname}
        )

    if fieldtype == "Select":
        options = field.select_options()
        if options and value not in options:
            raise ValidationError(
                f"{field.label} must be one of {', '.join(options)}",
                error_code="INVALID_FILTER_VALUE",
                context={"fieldname": field.fieldname}
            )
    return value


class FilterDialog:
    """Headless modal holding filter field values."""

    def __init__(self, title: str, fields: List[FieldDescriptor]):
        self.title = title
        self.fields = list(fields)
        self.values: Dict[str, Any] = {f.fieldname: f.default for f in self.fields}
        self.touched = set()
        self.is_open = False
        self.primary_action_label: Optional[str] = None
        self.primary_action: Optional[Callable[[], Any]] = None
        self._change_hooks: Dict[str, Callable[[Any], None]] = {}

    def get_field(self, fieldname: str) -> FieldDescriptor:
        for field in self.fields:
            if field.fieldname == fieldname:
                return field
        raise ValidationError(f"Unknown filter field: {fieldname}", error_code="UNKNOWN_FILTER_FIELD")

    def on_change(self, fieldname: str, hook: Callable[[Any], None]) -> None:
        self._change_hooks[fieldname] = hook

    def set_values(self, values: Dict[str, Any]) -> None:
        """Seed field values without firing change hooks."""
        for fieldname, value in (values or {}).items():
            if fieldname in self.values:
                self.values[fieldname] = value

    def set_value(self, fieldname: str, value: Any) -> None:
        """Record user input for a field and fire its change hook."""
        self.get_field(fieldname)
        self.values[fieldname] = value
        self.touched.add(fieldname)
        hook = self._change_hooks.get(fieldname)
        if hook:
            hook(value)

    def get_values(self) -> Dict[str, Any]:
        """Coerced values of every field; raises ValidationError on bad input."""
        values = {}
        missing = []
        for field in self.fields:
            value = coerce_value(field, self.values.get(field.fieldname))
            if field.reqd and value is None:
                missing.append(field.label)
            values[field.fieldname] = value

        if missing:
            raise ValidationError(
                f"Missing values for required filters: {', '.join(missing)}",
                error_code="MISSING_FILTER_VALUES",
                context={"fields": missing}
            )
        return values

    def set_primary_action(self, label: str, action: Callable[[], Any]) -> None:
        self.primary_action_label = label
        self.primary_action = action

    @property
    def can_save(self) -> bool:
        return self.primary_action is not None

    def show(self) -> None:
        self.is_open = True

    def hide(self) -> None:
        self.is_open = False


class FilterDialogController:
    """Collects, validates and hands filter edits to a chart controller."""

    title = "Set Filters"
    save_label = "Save Filters"

    def __init__(self, chart: "ChartController", dialog_factory: Callable[..., FilterDialog] = FilterDialog):
        self.chart = chart
        self.dialog_factory = dialog_factory
        self.dialog: Optional[FilterDialog] = None

    def open(self) -> FilterDialog:
        dialog = self.dialog_factory(title=self.title, fields=self.chart.settings.filters)
        dialog.set_values(self.chart.filters)
        for field in dialog.fields:
            dialog.on_change(field.fieldname, self._on_field_change)
        dialog.show()
        self.dialog = dialog
        return dialog

    def _on_field_change(self, value: Any) -> None:
        # Any interaction enables saving, even re-selecting the original value
        if self.dialog is not None and not self.dialog.can_save:
            self.dialog.set_primary_action(self.save_label, self.save)

    async def save(self) -> bool:
        """Validate and apply the dialog values; True when filters were persisted."""
        dialog = self.dialog
        if dialog is None or not dialog.is_open:
            logger.debug(f"No open filter dialog for chart '{self.chart.name}'")
            return False

        try:
            values = dialog.get_values()
        except ValidationError as e:
            self.chart.report(e, "set_filters")
            return False

        dialog.hide()
        self.dialog = None
        return await self.chart.apply_filters(values)

    def cancel(self) -> None:
        if self.dialog is not None:
            self.dialog.hide()
            self.dialog = None
        self.chart.end_filter_edit()
