"""
Event Recording - Normal and Warning events for reconciliation outcomes.

The reconciler records events against a managed resource, similar to
Kubernetes events. Each event is written to the log at a level matching
its type.
"""

import json
import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from enum import Enum

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Types of resource events."""

    NORMAL = "Normal"
    WARNING = "Warning"


class EventReason(Enum):
    """Reasons recorded by the instance reconciler."""

    CANNOT_CONNECT = "CannotConnectToProvider"
    CANNOT_OBSERVE = "CannotObserveExternalResource"
    CANNOT_CREATE = "CannotCreateExternalResource"
    CANNOT_UPDATE = "CannotUpdateExternalResource"
    CANNOT_DELETE = "CannotDeleteExternalResource"
    CREATED = "CreatedExternalResource"
    UPDATED = "UpdatedExternalResource"
    DELETED = "DeletedExternalResource"


@dataclass
class ResourceEvent:
    """Event recorded against a managed resource."""

    event_type: EventType
    reason: EventReason
    message: str
    resource_kind: str
    resource_name: str
    timestamp: str

    def to_json(self) -> str:
        data = asdict(self)
        data["event_type"] = self.event_type.value
        data["reason"] = self.reason.value
        return json.dumps(data)

    @classmethod
    def for_resource(
        cls,
        event_type: EventType,
        reason: EventReason,
        message: str,
        kind: str,
        name: str,
    ) -> "ResourceEvent":
        return cls(
            event_type=event_type,
            reason=reason,
            message=message,
            resource_kind=kind,
            resource_name=name,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )


class EventRecorder:
    """Records events for managed resources to the log."""

    def record(
        self,
        event_type: EventType,
        reason: EventReason,
        message: str,
        kind: str,
        name: str,
    ) -> ResourceEvent:
        event = ResourceEvent.for_resource(event_type, reason, message, kind, name)
        if event_type == EventType.WARNING:
            logger.warning(f"{kind}/{name}: {reason.value}: {message}")
        else:
            logger.info(f"{kind}/{name}: {reason.value}: {message}")
        return event

    def normal(
        self, reason: EventReason, message: str, kind: str, name: str
    ) -> ResourceEvent:
        return self.record(EventType.NORMAL, reason, message, kind, name)

    def warning(
        self, reason: EventReason, err: Exception, kind: str, name: str
    ) -> ResourceEvent:
        return self.record(EventType.WARNING, reason, str(err), kind, name)
