"""
Error handling and user notification for dashboard charts

Maps the failure kinds of the chart lifecycle to user-facing messages and
forwards them to the notification collaborator. Errors are never retried
automatically; the user decides whether to trigger the action again.
"""

import traceback
import logging
from typing import Dict, Any, Optional, List
from enum import Enum
from dataclasses import dataclass, field
from datetime import datetime

from .exceptions import (
    SettingsLoadFailure, DataFetchFailure, PersistFailure,
    DocumentLoadFailure, ConfigurationError, ValidationError
)
from .interfaces import NotifierInterface


class ErrorSeverity(Enum):
    """Error severity levels"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RecoveryAction(Enum):
    """Recovery left to the user"""
    RETRY_MANUALLY = "retry_manually"
    FIX_INPUT = "fix_input"
    CHECK_CONFIGURATION = "check_configuration"
    LOG_AND_NOTIFY = "log_and_notify"
    ABORT_OPERATION = "abort_operation"


@dataclass
class ErrorContext:
    """Context information for error handling"""
    operation: str
    component: str
    dashboard_name: Optional[str] = None
    chart_name: Optional[str] = None
    source_name: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)
    additional_data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ErrorResponse:
    """Structured error response"""
    error_type: str
    error_code: str
    message: str
    user_message: str
    severity: ErrorSeverity
    recovery_action: RecoveryAction
    suggestions: List[str]
    context: ErrorContext
    technical_details: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.error_type,
            "code": self.error_code,
            "message": self.user_message,
            "severity": self.severity.value,
            "suggestions": self.suggestions,
            "timestamp": self.context.timestamp.isoformat(),
            "dashboard": self.context.dashboard_name,
            "chart": self.context.chart_name
        }


class LoggingNotifier(NotifierInterface):
    """Notifier that writes user-facing messages to the log."""

    def __init__(self, logger_name: str = "chartboard.notifications"):
        self.logger = logging.getLogger(logger_name)

    def notify_error(self, title: str, message: str, details: Dict[str, Any] = None) -> None:
        self.logger.error(f"{title}: {message}", extra={"details": details or {}})


class ErrorHandler:
    """Centralized error handling for dashboard and chart controllers"""

    def __init__(self, notifier: Optional[NotifierInterface] = None):
        self.logger = logging.getLogger(__name__)
        self.notifier = notifier or LoggingNotifier()
        self.error_counts: Dict[str, int] = {}

    def handle_error(
        self,
        error: Exception,
        context: ErrorContext,
        include_technical_details: bool = False
    ) -> ErrorResponse:
        """
        Build the response for an error and record it

        Args:
            error: The exception that occurred
            context: Context information about the error
            include_technical_details: Whether to include technical details

        Returns:
            Structured error response
        """
        error_type = type(error).__name__
        handler_method = getattr(self, f'_handle_{error_type.lower()}', self._handle_generic_error)

        error_response = handler_method(error, context)

        if include_technical_details:
            error_response.technical_details = self._get_technical_details(error)

        self._log_error(error, error_response, context)
        self._update_error_stats(error_type, context)

        return error_response

    def report(self, error: Exception, context: ErrorContext) -> ErrorResponse:
        """Handle an error and surface it to the user through the notifier."""
        error_response = self.handle_error(error, context)
        self.notifier.notify_error(
            title=self._title_for(context),
            message=error_response.user_message,
            details=error_response.to_dict()
        )
        return error_response

    def _title_for(self, context: ErrorContext) -> str:
        if context.chart_name:
            return f"Chart '{context.chart_name}'"
        if context.dashboard_name:
            return f"Dashboard '{context.dashboard_name}'"
        return "Dashboard"

    def _handle_settingsloadfailure(self, error: SettingsLoadFailure, context: ErrorContext) -> ErrorResponse:
        return ErrorResponse(
            error_type="SettingsLoadFailure",
            error_code=error.error_code or "SETTINGS_LOAD_FAILED",
            message=str(error),
            user_message=f"Could not load settings for data source '{context.source_name or 'unknown'}'.",
            severity=ErrorSeverity.HIGH,
            recovery_action=RecoveryAction.RETRY_MANUALLY,
            suggestions=[
                "Reload the dashboard to try again",
                "Check that the data source is installed on the server"
            ],
            context=context
        )

    def _handle_datafetchfailure(self, error: DataFetchFailure, context: ErrorContext) -> ErrorResponse:
        return ErrorResponse(
            error_type="DataFetchFailure",
            error_code=error.error_code or "DATA_FETCH_FAILED",
            message=str(error),
            user_message=f"Could not fetch chart data: {error}. The previous data is still shown.",
            severity=ErrorSeverity.MEDIUM,
            recovery_action=RecoveryAction.RETRY_MANUALLY,
            suggestions=[
                "Use Force Refresh to try again",
                "Check the chart filters"
            ],
            context=context
        )

    def _handle_persistfailure(self, error: PersistFailure, context: ErrorContext) -> ErrorResponse:
        return ErrorResponse(
            error_type="PersistFailure",
            error_code=error.error_code or "PERSIST_FAILED",
            message=str(error),
            user_message="Could not save the chart filters.",
            severity=ErrorSeverity.MEDIUM,
            recovery_action=RecoveryAction.RETRY_MANUALLY,
            suggestions=["Open Set Filters and save again"],
            context=context
        )

    def _handle_documentloadfailure(self, error: DocumentLoadFailure, context: ErrorContext) -> ErrorResponse:
        return ErrorResponse(
            error_type="DocumentLoadFailure",
            error_code=error.error_code or "DOCUMENT_LOAD_FAILED",
            message=str(error),
            user_message=str(error),
            severity=ErrorSeverity.HIGH,
            recovery_action=RecoveryAction.ABORT_OPERATION,
            suggestions=["Check the dashboard name in the address"],
            context=context
        )

    def _handle_validationerror(self, error: ValidationError, context: ErrorContext) -> ErrorResponse:
        return ErrorResponse(
            error_type="ValidationError",
            error_code=error.error_code or "VALIDATION_FAILED",
            message=str(error),
            user_message=str(error),
            severity=ErrorSeverity.LOW,
            recovery_action=RecoveryAction.FIX_INPUT,
            suggestions=["Correct the highlighted values"],
            context=context
        )

    def _handle_configurationerror(self, error: ConfigurationError, context: ErrorContext) -> ErrorResponse:
        return ErrorResponse(
            error_type="ConfigurationError",
            error_code=error.error_code or "CONFIGURATION_ERROR",
            message=str(error),
            user_message=f"The chart is misconfigured: {error}",
            severity=ErrorSeverity.HIGH,
            recovery_action=RecoveryAction.CHECK_CONFIGURATION,
            suggestions=["Check the chart's width and type"],
            context=context
        )

    def _handle_generic_error(self, error: Exception, context: ErrorContext) -> ErrorResponse:
        return ErrorResponse(
            error_type=type(error).__name__,
            error_code="UNKNOWN_ERROR",
            message=str(error),
            user_message="An unexpected error occurred. Please try again.",
            severity=ErrorSeverity.HIGH,
            recovery_action=RecoveryAction.LOG_AND_NOTIFY,
            suggestions=["Try the operation again"],
            context=context
        )

    def _get_technical_details(self, error: Exception) -> Dict[str, Any]:
        return {
            "exception_type": type(error).__name__,
            "exception_message": str(error),
            "traceback": "".join(traceback.format_exception(type(error), error, error.__traceback__)),
            "cause": repr(error.__cause__) if error.__cause__ else None
        }

    def _log_error(self, error: Exception, error_response: ErrorResponse, context: ErrorContext):
        """Log error with appropriate level"""
        log_data = {
            "error_type": error_response.error_type,
            "error_code": error_response.error_code,
            "severity": error_response.severity.value,
            "operation": context.operation,
            "component": context.component,
            "dashboard_name": context.dashboard_name,
            "chart_name": context.chart_name
        }

        if error_response.severity in (ErrorSeverity.CRITICAL, ErrorSeverity.HIGH):
            self.logger.error(f"{context.component}.{context.operation} failed: {error}", extra=log_data)
        elif error_response.severity == ErrorSeverity.MEDIUM:
            self.logger.warning(f"{context.component}.{context.operation} failed: {error}", extra=log_data)
        else:
            self.logger.info(f"{context.component}.{context.operation} rejected: {error}", extra=log_data)

    def _update_error_stats(self, error_type: str, context: ErrorContext):
        key = f"{context.component}:{error_type}"
        self.error_counts[key] = self.error_counts.get(key, 0) + 1

    def get_error_statistics(self) -> Dict[str, Any]:
        return {
            "error_counts": self.error_counts.copy(),
            "total_errors": sum(self.error_counts.values())
        }


def create_error_context(
    operation: str,
    component: str,
    dashboard_name: str = None,
    chart_name: str = None,
    source_name: str = None,
    **kwargs
) -> ErrorContext:
    """Convenience function for creating error context"""
    return ErrorContext(
        operation=operation,
        component=component,
        dashboard_name=dashboard_name,
        chart_name=chart_name,
        source_name=source_name,
        additional_data=kwargs
    )
