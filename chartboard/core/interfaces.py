"""
Base interfaces and abstract classes for the Chartboard dashboard system.
"""

from abc import ABC, abstractmethod
from typing import Dict, Any

from .models import ChartHandle, ChartOptions, SeriesData, ValidationResult


class DocumentStoreInterface(ABC):
    """Interface for the dashboard document store."""

    @abstractmethod
    async def get_document(self, doctype: str, name: str) -> Dict[str, Any]:
        """Load a document by type and name."""
        pass

    @abstractmethod
    async def set_field(self, doctype: str, name: str, field: str, value: Any) -> None:
        """Persist a single field of a document."""
        pass


class RPCClientInterface(ABC):
    """Interface for remote procedure calls."""

    @abstractmethod
    async def call(self, method_path: str, args: Dict[str, Any]) -> Any:
        """Call a remote method and return its result."""
        pass


class ChartRendererInterface(ABC):
    """Interface for visualization renderers."""

    @abstractmethod
    def create(self, container: Any, options: ChartOptions) -> ChartHandle:
        """Draw a new chart into a container."""
        pass

    @abstractmethod
    def update(self, handle: ChartHandle, data: SeriesData) -> None:
        """Replace the data of an existing chart in place."""
        pass

    @abstractmethod
    def dispose(self, handle: ChartHandle) -> None:
        """Release a chart created by this renderer."""
        pass


class NotifierInterface(ABC):
    """Interface for surfacing errors to the end user."""

    @abstractmethod
    def notify_error(self, title: str, message: str, details: Dict[str, Any] = None) -> None:
        """Show an error message."""
        pass


class ConfigurationManagerInterface(ABC):
    """Interface for configuration management."""

    @abstractmethod
    def update_config(self, section: str, key: str, value: Any) -> None:
        """Update configuration value."""
        pass

    @abstractmethod
    def validate_config(self) -> ValidationResult:
        """Validate current configuration."""
        pass
