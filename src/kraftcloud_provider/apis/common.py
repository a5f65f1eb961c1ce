"""
Common API types shared by managed resources.

Conditions follow the managed resource model: a ``Ready`` condition that
tracks the external resource's availability and a ``Synced`` condition
that tracks whether the last reconciliation succeeded.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

ANNOTATION_EXTERNAL_NAME = "crossplane.io/external-name"
FINALIZER = "finalizer.managedresource.crossplane.io"


class ConditionType(Enum):
    READY = "Ready"
    SYNCED = "Synced"


class ConditionStatus(Enum):
    TRUE = "True"
    FALSE = "False"
    UNKNOWN = "Unknown"


class ConditionReason(Enum):
    AVAILABLE = "Available"
    UNAVAILABLE = "Unavailable"
    CREATING = "Creating"
    DELETING = "Deleting"
    RECONCILE_SUCCESS = "ReconcileSuccess"
    RECONCILE_ERROR = "ReconcileError"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Condition(BaseModel):
    """A single observed condition of a managed resource."""

    model_config = ConfigDict(populate_by_name=True)

    type: ConditionType
    status: ConditionStatus
    reason: ConditionReason
    message: str = ""
    last_transition_time: datetime = Field(
        default_factory=_now, alias="lastTransitionTime"
    )

    def equal(self, other: "Condition") -> bool:
        """Compare two conditions ignoring the transition time."""
        return (
            self.type == other.type
            and self.status == other.status
            and self.reason == other.reason
            and self.message == other.message
        )


def available() -> Condition:
    """The external resource is available for use."""
    return Condition(
        type=ConditionType.READY,
        status=ConditionStatus.TRUE,
        reason=ConditionReason.AVAILABLE,
    )


def unavailable() -> Condition:
    return Condition(
        type=ConditionType.READY,
        status=ConditionStatus.FALSE,
        reason=ConditionReason.UNAVAILABLE,
    )


def creating() -> Condition:
    """The external resource is being created."""
    return Condition(
        type=ConditionType.READY,
        status=ConditionStatus.FALSE,
        reason=ConditionReason.CREATING,
    )


def deleting() -> Condition:
    """The external resource is being deleted."""
    return Condition(
        type=ConditionType.READY,
        status=ConditionStatus.FALSE,
        reason=ConditionReason.DELETING,
    )


def reconcile_success() -> Condition:
    return Condition(
        type=ConditionType.SYNCED,
        status=ConditionStatus.TRUE,
        reason=ConditionReason.RECONCILE_SUCCESS,
    )


def reconcile_error(err: Exception) -> Condition:
    return Condition(
        type=ConditionType.SYNCED,
        status=ConditionStatus.FALSE,
        reason=ConditionReason.RECONCILE_ERROR,
        message=str(err),
    )


class ObjectMeta(BaseModel):
    """Metadata common to all records."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    namespace: str = ""
    annotations: Dict[str, str] = Field(default_factory=dict)
    finalizers: List[str] = Field(default_factory=list)
    generation: int = 1
    deletion_timestamp: Optional[datetime] = Field(
        default=None, alias="deletionTimestamp"
    )


class ConditionedStatus(BaseModel):
    """Status carrying a list of conditions, at most one per type."""

    model_config = ConfigDict(populate_by_name=True)

    conditions: List[Condition] = Field(default_factory=list)

    def get_condition(self, condition_type: ConditionType) -> Optional[Condition]:
        for condition in self.conditions:
            if condition.type == condition_type:
                return condition
        return None

    def set_conditions(self, *conditions: Condition) -> None:
        """
        Set the supplied conditions, replacing any of the same type.

        A condition that only differs by transition time is left untouched
        so the original transition time is kept.
        """
        for new in conditions:
            for i, existing in enumerate(self.conditions):
                if existing.type != new.type:
                    continue
                if not existing.equal(new):
                    self.conditions[i] = new
                break
            else:
                self.conditions.append(new)


class ManagedResource(BaseModel):
    """Behaviour shared by managed resources: identity and lifecycle helpers."""

    model_config = ConfigDict(populate_by_name=True)

    metadata: ObjectMeta

    def get_external_name(self) -> str:
        """Return the external name, or an empty string if unset."""
        return self.metadata.annotations.get(ANNOTATION_EXTERNAL_NAME, "")

    def set_external_name(self, name: str) -> None:
        self.metadata.annotations[ANNOTATION_EXTERNAL_NAME] = name

    def is_being_deleted(self) -> bool:
        return self.metadata.deletion_timestamp is not None

    def has_finalizer(self, finalizer: str) -> bool:
        return finalizer in self.metadata.finalizers

    def add_finalizer(self, finalizer: str) -> bool:
        """Add a finalizer. Returns True if the metadata changed."""
        if self.has_finalizer(finalizer):
            return False
        self.metadata.finalizers.append(finalizer)
        return True

    def remove_finalizer(self, finalizer: str) -> bool:
        """Remove a finalizer. Returns True if the metadata changed."""
        if not self.has_finalizer(finalizer):
            return False
        self.metadata.finalizers = [
            f for f in self.metadata.finalizers if f != finalizer
        ]
        return True
