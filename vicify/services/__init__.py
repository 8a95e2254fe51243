"""
🏗️ Service Layer - Base Service Interface
==========================================

Services hold command logic and sit between the outer surfaces (CLI, HTTP)
and the Spotify client. They never raise for expected failures: every
operation returns a ``ServiceResult`` carrying the notification shown to the
user.
"""

import logging
from abc import ABC
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from ..notifications import Notification


@dataclass
class ServiceResult:
    """Standardized result object for service operations."""
    success: bool
    data: Optional[Any] = None
    message: Optional[str] = None
    error_code: Optional[str] = None
    notification: Optional[Notification] = None
    timestamp: datetime = None

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = datetime.now()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API responses."""
        result = {
            "success": self.success,
            "timestamp": self.timestamp.isoformat()
        }

        if self.data is not None:
            result["data"] = self.data
        if self.message:
            result["message"] = self.message
        if self.error_code:
            result["error_code"] = self.error_code
        if self.notification is not None:
            result["notification"] = self.notification.to_dict()

        return result


class BaseService(ABC):
    """Base class for all services with common functionality."""

    def __init__(self, name: str):
        self.name = name
        self.logger = logging.getLogger(f"vicify.service.{name}")

    def _success_result(self, data: Any = None, message: str = None,
                        notification: Optional[Notification] = None) -> ServiceResult:
        return ServiceResult(
            success=True,
            data=data,
            message=message,
            notification=notification,
        )

    def _error_result(self, message: str, error_code: str = "ERROR", data: Any = None,
                      notification: Optional[Notification] = None) -> ServiceResult:
        return ServiceResult(
            success=False,
            data=data,
            message=message,
            error_code=error_code,
            notification=notification,
        )
