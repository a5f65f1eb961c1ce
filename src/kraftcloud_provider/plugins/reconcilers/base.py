"""
Reconciler Plugin Base - Abstract interface for reconciler plugins.

Reconciler plugins own the reconciliation logic for one or more resource
types and run their own continuous reconciliation loops. The hosting
runtime hands them a ReconcilerContext giving access to stored records,
status persistence and provider configuration.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional

from kraftcloud_provider.apis.common import ManagedResource
from kraftcloud_provider.apis.providerconfig import ProviderConfig, ProviderConfigUsage

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    """Result from a reconciler's reconcile() call."""

    success: bool = False
    message: str = ""
    requeue_after: Optional[int] = None


class ReconcilerContext(ABC):
    """
    Context provided to reconciler plugins by the hosting runtime.

    Record storage, provider config lookup and usage tracking are owned by
    the runtime; reconcilers only read and write through this interface.
    """

    def __init__(self, shutdown_event: Optional[asyncio.Event] = None):
        self.shutdown_event = shutdown_event or asyncio.Event()

    @abstractmethod
    async def get_resources_needing_reconciliation(
        self,
        resource_type_names: List[str],
        limit: int = 10,
    ) -> List[ManagedResource]:
        """
        Get resources needing reconciliation, filtered by resource type.

        Args:
            resource_type_names: Resource kinds to filter by.
            limit: Maximum number of resources to return.
        """
        pass

    @abstractmethod
    async def get_provider_config(self, name: str) -> Optional[ProviderConfig]:
        """Return the named ProviderConfig, or None if it does not exist."""
        pass

    @abstractmethod
    async def get_secret(self, namespace: str, name: str) -> Optional[Dict[str, bytes]]:
        """Return the data of a secret, or None if it does not exist."""
        pass

    @abstractmethod
    async def track_usage(self, usage: ProviderConfigUsage) -> None:
        """Record that a resource uses a ProviderConfig. Must be idempotent."""
        pass

    @abstractmethod
    async def update_status(self, resource: ManagedResource) -> None:
        """
        Persist a resource's status, annotations and finalizers.

        Desired fields are owned by the user and are not written back.
        """
        pass

    @abstractmethod
    async def remove_finalizer(self, resource: ManagedResource, finalizer: str) -> None:
        """Remove a finalizer from a resource and persist the change."""
        pass

    @abstractmethod
    async def hard_delete_resource(self, resource: ManagedResource) -> bool:
        """
        Permanently delete a resource (only if marked deleted and no finalizers).

        Returns:
            True if deleted, False otherwise.
        """
        pass

    async def record_reconciliation(
        self,
        resource: ManagedResource,
        result: ReconcileResult,
        duration_seconds: Optional[float] = None,
        drift_detected: bool = False,
    ) -> None:
        """Record a reconciliation attempt in history."""
        outcome = "completed" if result.success else "failed"
        logger.debug(
            f"Reconciliation of {resource.metadata.name} {outcome} "
            f"in {duration_seconds or 0:.3f}s (drift={drift_detected}): "
            f"{result.message}"
        )


class ReconcilerPlugin(ABC):
    """
    Abstract base class for reconciler plugins.

    Reconciler plugins own the reconciliation logic for one or more
    resource types. They run their own continuous reconciliation loop,
    reading records from the context and reporting status back.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this reconciler."""
        pass

    @property
    @abstractmethod
    def resource_types(self) -> List[str]:
        """Resource kinds this reconciler handles."""
        pass

    @abstractmethod
    async def start(self, ctx: ReconcilerContext) -> None:
        """
        Start the reconciliation loop.

        The reconciler should run its own loop until ctx.shutdown_event
        is set.

        Args:
            ctx: ReconcilerContext providing access to resources and status.
        """
        pass

    @abstractmethod
    async def reconcile(
        self, resource: ManagedResource, ctx: ReconcilerContext
    ) -> ReconcileResult:
        """
        Reconcile a single resource.

        Compare desired state against actual state and take action.
        Report status back via ctx.update_status().

        Args:
            resource: The managed resource record.
            ctx: ReconcilerContext for status updates.

        Returns:
            ReconcileResult indicating success/failure.
        """
        pass

    @abstractmethod
    async def stop(self) -> None:
        """Graceful shutdown. Clean up any resources."""
        pass
