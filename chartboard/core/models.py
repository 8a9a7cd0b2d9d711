"""
Core data models and type definitions for the Chartboard dashboard system.
"""

from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional
from enum import Enum
from datetime import datetime
import json
import uuid

import pandas as pd

from .exceptions import ConfigurationError, ValidationError


class ChartWidth(Enum):
    """Display width of a chart on the dashboard grid."""
    HALF = "Half"
    FULL = "Full"

    @classmethod
    def parse(cls, value: Any) -> "ChartWidth":
        if isinstance(value, cls):
            return value
        for member in cls:
            if member.value == value:
                return member
        raise ConfigurationError(
            f"Unknown chart width: {value!r}",
            error_code="UNKNOWN_CHART_WIDTH",
            context={"allowed": [m.value for m in cls]}
        )


class ChartType(Enum):
    """Visualization type of a dashboard chart."""
    LINE = "Line"
    BAR = "Bar"
    PIE = "Pie"
    PERCENTAGE = "Percentage"

    @classmethod
    def parse(cls, value: Any) -> "ChartType":
        if isinstance(value, cls):
            return value
        for member in cls:
            if member.value == value:
                return member
        raise ConfigurationError(
            f"Unknown chart type: {value!r}",
            error_code="UNKNOWN_CHART_TYPE",
            context={"allowed": [m.value for m in cls]}
        )


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a stored timestamp (datetime or ISO string) into a datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        return None


def parse_filters(payload: Optional[str]) -> Dict[str, Any]:
    """Parse a persisted filter payload into a filter mapping.

    An empty or missing payload yields an empty mapping.
    """
    if not payload:
        return {}
    try:
        filters = json.loads(payload)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid filter payload: {e}", error_code="INVALID_FILTER_PAYLOAD")
    if filters is None:
        return {}
    if not isinstance(filters, dict):
        raise ValidationError(
            "Filter payload must be a JSON object",
            error_code="INVALID_FILTER_PAYLOAD",
            context={"payload": payload}
        )
    return filters


def serialize_filters(filters: Dict[str, Any]) -> str:
    """Serialize a filter mapping into its persisted flat JSON form."""
    return json.dumps(filters or {}, default=str)


@dataclass
class FieldDescriptor:
    """Filter field exposed by a data source."""
    fieldname: str
    fieldtype: str = "Data"
    label: str = ""
    default: Any = None
    options: Any = None
    reqd: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FieldDescriptor":
        if not data.get("fieldname"):
            raise ConfigurationError("Filter field is missing a fieldname", error_code="INVALID_FIELD")
        return cls(
            fieldname=data["fieldname"],
            fieldtype=data.get("fieldtype") or "Data",
            label=data.get("label") or data["fieldname"],
            default=data.get("default"),
            options=data.get("options"),
            reqd=bool(data.get("reqd", False))
        )

    def select_options(self) -> List[str]:
        """Options of a Select field, accepting newline separated strings."""
        if not self.options:
            return []
        if isinstance(self.options, str):
            return [option for option in self.options.split("\n") if option]
        return list(self.options)


@dataclass
class SourceSettings:
    """Settings descriptor of a pluggable data source."""
    source_name: str
    method_path: str
    is_time_series: bool = False
    filters: List[FieldDescriptor] = field(default_factory=list)

    @classmethod
    def from_dict(cls, source_name: str, data: Dict[str, Any]) -> "SourceSettings":
        if not isinstance(data, dict) or not data.get("method_path"):
            raise ConfigurationError(
                f"Settings for source '{source_name}' do not name a method_path",
                error_code="INVALID_SOURCE_SETTINGS"
            )
        return cls(
            source_name=source_name,
            method_path=data["method_path"],
            is_time_series=bool(data.get("is_time_series", False)),
            filters=[FieldDescriptor.from_dict(f) for f in data.get("filters") or []]
        )


@dataclass
class ChartDefinition:
    """Dashboard chart document as held by a chart controller."""
    name: str
    source: str
    width: ChartWidth = ChartWidth.HALF
    type: ChartType = ChartType.LINE
    chart_name: str = ""
    color: Optional[str] = None
    filters_json: str = "{}"
    last_synced_on: Optional[datetime] = None

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "ChartDefinition":
        return cls(
            name=doc["name"],
            source=doc["source"],
            width=ChartWidth.parse(doc.get("width") or ChartWidth.HALF.value),
            type=ChartType.parse(doc.get("type") or ChartType.LINE.value),
            chart_name=doc.get("chart_name") or doc["name"],
            color=doc.get("color") or None,
            filters_json=doc.get("filters_json") or "{}",
            last_synced_on=parse_timestamp(doc.get("last_synced_on"))
        )

    @property
    def filters(self) -> Dict[str, Any]:
        return parse_filters(self.filters_json)


@dataclass
class DashboardDefinition:
    """Named dashboard and its ordered charts."""
    name: str
    charts: List[ChartDefinition] = field(default_factory=list)

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "DashboardDefinition":
        return cls(
            name=doc.get("dashboard_name") or doc["name"],
            charts=[ChartDefinition.from_document(chart) for chart in doc.get("charts") or []]
        )


@dataclass
class SeriesData:
    """Labels plus one or more numeric series, as returned by a data endpoint."""
    labels: List[Any] = field(default_factory=list)
    datasets: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "SeriesData":
        data = data or {}
        datasets = []
        for index, dataset in enumerate(data.get("datasets") or []):
            datasets.append({
                "name": dataset.get("name") or f"Series {index + 1}",
                "values": list(dataset.get("values") or [])
            })
        return cls(labels=list(data.get("labels") or []), datasets=datasets)

    def to_dict(self) -> Dict[str, Any]:
        return {"labels": list(self.labels), "datasets": [dict(d) for d in self.datasets]}

    def to_frame(self) -> pd.DataFrame:
        """Series as columns of a DataFrame indexed by label."""
        columns = {}
        for dataset in self.datasets:
            name = dataset["name"]
            suffix = 2
            while name in columns:
                name = f"{dataset['name']} ({suffix})"
                suffix += 1
            values = list(dataset["values"])[:len(self.labels)]
            values += [None] * (len(self.labels) - len(values))
            columns[name] = values
        return pd.DataFrame(columns, index=pd.Index(self.labels, name="label"))


@dataclass
class ChartOptions:
    """Arguments passed to the renderer when a chart is first drawn."""
    title: str
    data: SeriesData
    type: ChartType
    colors: List[str] = field(default_factory=list)
    axis_options: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ChartHandle:
    """Live visualization object owned by one chart controller."""
    chart_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    options: Optional[ChartOptions] = None
    figure: Any = None
    container: Any = None
    update_count: int = 0
    disposed: bool = False
    created_at: datetime = field(default_factory=datetime.now)


@dataclass
class ValidationResult:
    """Result from configuration validation."""
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
