"""
SQLAlchemy-backed document store for dashboards and dashboard charts.
"""

from typing import List, Optional, Dict, Any, Callable
import asyncio
from sqlalchemy.exc import SQLAlchemyError, IntegrityError
import logging
from functools import wraps

from .config import StoreConfig
from .database import DashboardRecord, DashboardChartRecord, DashboardChartLink
from .exceptions import RepositoryError, RecordNotFoundError
from .interfaces import DocumentStoreInterface

logger = logging.getLogger(__name__)


def handle_db_errors(func: Callable) -> Callable:
    """Decorator to handle database errors consistently."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except RepositoryError:
            raise
        except IntegrityError as e:
            logger.error(f"Integrity error in {func.__name__}: {str(e)}")
            raise RepositoryError(f"Record already exists or violates constraints: {str(e)}")
        except SQLAlchemyError as e:
            logger.error(f"Database error in {func.__name__}: {str(e)}")
            raise RepositoryError(f"Database operation failed: {str(e)}")
    return wrapper


class SQLAlchemyDocumentStore(DocumentStoreInterface):
    """Document store reading and writing dashboard documents through SQLAlchemy."""

    CHART_FIELDS = ("chart_name", "source", "width", "type", "color", "filters_json", "last_synced_on")

    def __init__(self, session_factory, config: Optional[StoreConfig] = None):
        self.session_factory = session_factory
        self.config = config or StoreConfig()

    async def get_document(self, doctype: str, name: str) -> Dict[str, Any]:
        return await asyncio.to_thread(self.load_document, doctype, name)

    async def set_field(self, doctype: str, name: str, field: str, value: Any) -> None:
        await asyncio.to_thread(self.update_field, doctype, name, field, value)

    @handle_db_errors
    def load_document(self, doctype: str, name: str) -> Dict[str, Any]:
        """Load a document as a plain mapping."""
        with self.session_factory() as session:
            if doctype == self.config.dashboard_doctype:
                record = session.get(DashboardRecord, name)
                if record is None:
                    raise RecordNotFoundError(f"{doctype} {name} not found")
                return self._dashboard_to_document(record)

            if doctype == self.config.chart_doctype:
                record = session.get(DashboardChartRecord, name)
                if record is None:
                    raise RecordNotFoundError(f"{doctype} {name} not found")
                return self._chart_to_document(record)

        raise RepositoryError(f"Unknown document type: {doctype}")

    @handle_db_errors
    def update_field(self, doctype: str, name: str, field: str, value: Any) -> None:
        """Set a single field on a chart document and commit."""
        if doctype != self.config.chart_doctype:
            raise RepositoryError(f"Fields of {doctype} documents are read-only")
        if field not in self.CHART_FIELDS:
            raise RepositoryError(f"Unknown field {field} for {doctype}")

        with self.session_factory() as session:
            record = session.get(DashboardChartRecord, name)
            if record is None:
                raise RecordNotFoundError(f"{doctype} {name} not found")
            setattr(record, field, value)
            session.commit()
            logger.debug(f"Updated {doctype} {name}.{field}")

    @handle_db_errors
    def save_chart(self, name: str, source: str, **fields) -> Dict[str, Any]:
        """Create or replace a chart document."""
        unknown = set(fields) - set(self.CHART_FIELDS)
        if unknown:
            raise RepositoryError(f"Unknown chart fields: {sorted(unknown)}")

        with self.session_factory() as session:
            record = session.get(DashboardChartRecord, name) or DashboardChartRecord(name=name)
            record.source = source
            record.chart_name = fields.get("chart_name") or record.chart_name or name
            for key, value in fields.items():
                setattr(record, key, value)
            session.add(record)
            session.commit()
            return self._chart_to_document(record)

    @handle_db_errors
    def save_dashboard(self, name: str, chart_names: List[str], dashboard_name: str = None) -> Dict[str, Any]:
        """Create or replace a dashboard and its ordered chart links."""
        with self.session_factory() as session:
            record = session.get(DashboardRecord, name) or DashboardRecord(name=name)
            record.dashboard_name = dashboard_name or name
            record.chart_links = [
                DashboardChartLink(chart_name=chart_name, idx=idx)
                for idx, chart_name in enumerate(chart_names)
            ]
            session.add(record)
            session.commit()
            session.refresh(record)
            return self._dashboard_to_document(record)

    def _chart_to_document(self, record: DashboardChartRecord) -> Dict[str, Any]:
        return {
            "doctype": self.config.chart_doctype,
            "name": record.name,
            "chart_name": record.chart_name,
            "source": record.source,
            "width": record.width,
            "type": record.type,
            "color": record.color,
            "filters_json": record.filters_json or "{}",
            "last_synced_on": record.last_synced_on,
            "modified": record.modified
        }

    def _dashboard_to_document(self, record: DashboardRecord) -> Dict[str, Any]:
        return {
            "doctype": self.config.dashboard_doctype,
            "name": record.name,
            "dashboard_name": record.dashboard_name,
            "is_default": bool(record.is_default),
            "charts": [self._chart_to_document(link.chart) for link in record.chart_links],
            "modified": record.modified
        }

