"""
Instance Reconciler - ReconcilerPlugin for KraftCloud instances.

Each cycle connects to KraftCloud, observes the remote instance and then
creates, updates or deletes it so it matches the Instance record. Failures
are recorded on the record and retried on the next poll; nothing is
retried within a cycle.
"""

import asyncio
import logging
import time
from typing import List, Optional

from kraftcloud_provider.apis import common
from kraftcloud_provider.apis.instance import INSTANCE_KIND, Instance
from kraftcloud_provider.config import ControllerConfig
from kraftcloud_provider.errors import ProviderError
from kraftcloud_provider.events import EventReason, EventRecorder
from kraftcloud_provider.plugins.reconcilers.base import (
    ReconcilerContext,
    ReconcilerPlugin,
    ReconcileResult,
)
from kraftcloud_provider.plugins.reconcilers.instance.connector import (
    Connector,
    ServiceFactory,
    kraftcloud_service_factory,
)

logger = logging.getLogger(__name__)


class InstanceReconciler(ReconcilerPlugin):
    """Reconciles Instance records against KraftCloud."""

    def __init__(
        self,
        config: Optional[ControllerConfig] = None,
        new_service_fn: Optional[ServiceFactory] = None,
        recorder: Optional[EventRecorder] = None,
    ):
        self.config = config or ControllerConfig()
        self.new_service_fn = new_service_fn or kraftcloud_service_factory()
        self.recorder = recorder or EventRecorder()
        self.semaphore = asyncio.Semaphore(self.config.max_concurrent_reconciles)
        self.running = False

    @property
    def name(self) -> str:
        return "kraftcloud-instance"

    @property
    def resource_types(self) -> List[str]:
        return [INSTANCE_KIND]

    async def start(self, ctx: ReconcilerContext) -> None:
        """Poll for Instance records and reconcile them until shutdown."""
        logger.info(
            f"Starting {self.name} reconciler "
            f"(poll interval {self.config.poll_interval}s)"
        )
        self.running = True

        while self.running and not ctx.shutdown_event.is_set():
            try:
                resources = await ctx.get_resources_needing_reconciliation(
                    self.resource_types,
                    limit=self.config.max_concurrent_reconciles * 2,
                )
                if resources:
                    logger.debug(f"Reconciling {len(resources)} instances")
                    results = await asyncio.gather(
                        *[self._reconcile_and_record(r, ctx) for r in resources],
                        return_exceptions=True,
                    )
                    for resource, result in zip(resources, results):
                        if isinstance(result, Exception):
                            logger.error(
                                f"Error reconciling {resource.metadata.name}: {result}",
                                exc_info=result,
                            )
            except Exception as e:
                logger.error(f"Error in reconciliation loop: {e}", exc_info=True)

            try:
                await asyncio.wait_for(
                    ctx.shutdown_event.wait(), timeout=self.config.poll_interval
                )
            except asyncio.TimeoutError:
                pass

        logger.info(f"Stopped {self.name} reconciler")

    async def stop(self) -> None:
        self.running = False

    async def _reconcile_and_record(
        self, resource: Instance, ctx: ReconcilerContext
    ) -> ReconcileResult:
        async with self.semaphore:
            start_time = time.monotonic()
            result = await self.reconcile(resource, ctx)
            await ctx.record_reconciliation(
                resource,
                result,
                duration_seconds=time.monotonic() - start_time,
                drift_detected=result.message == "updated",
            )
            return result

    async def _fail(
        self,
        instance: Instance,
        ctx: ReconcilerContext,
        reason: EventReason,
        err: ProviderError,
    ) -> ReconcileResult:
        instance.status.set_conditions(common.reconcile_error(err))
        self.recorder.warning(reason, err, INSTANCE_KIND, instance.metadata.name)
        await ctx.update_status(instance)
        return ReconcileResult(
            success=False,
            message=err.message,
            requeue_after=self.config.poll_interval,
        )

    async def _succeed(
        self, instance: Instance, ctx: ReconcilerContext, message: str
    ) -> ReconcileResult:
        instance.status.set_conditions(common.reconcile_success())
        await ctx.update_status(instance)
        return ReconcileResult(
            success=True,
            message=message,
            requeue_after=self.config.poll_interval,
        )

    async def reconcile(
        self, resource: Instance, ctx: ReconcilerContext
    ) -> ReconcileResult:
        """
        Run one reconciliation cycle for an Instance.

        Returns a ReconcileResult whose message is one of "created",
        "updated", "transition pending", "deleted" or "up to date" on
        success.
        """
        instance = resource
        name = instance.metadata.name

        connector = Connector(
            ctx,
            self.new_service_fn,
            observe_error_policy=self.config.observe_error_policy,
        )
        try:
            external = await connector.connect(instance)
        except ProviderError as e:
            return await self._fail(instance, ctx, EventReason.CANNOT_CONNECT, e)

        try:
            observation = await external.observe(instance)
        except ProviderError as e:
            return await self._fail(instance, ctx, EventReason.CANNOT_OBSERVE, e)

        if instance.is_being_deleted():
            if observation.resource_exists:
                try:
                    await external.delete(instance)
                except ProviderError as e:
                    return await self._fail(instance, ctx, EventReason.CANNOT_DELETE, e)
                await ctx.update_status(instance)
                self.recorder.normal(
                    EventReason.DELETED,
                    f"Successfully deleted instance {instance.get_external_name()}",
                    INSTANCE_KIND,
                    name,
                )
            await ctx.remove_finalizer(instance, common.FINALIZER)
            await ctx.hard_delete_resource(instance)
            return ReconcileResult(success=True, message="deleted")

        if instance.add_finalizer(common.FINALIZER):
            await ctx.update_status(instance)

        if not observation.resource_exists:
            previous = instance.get_external_name()
            if previous:
                logger.warning(
                    f"Instance {previous} for {name} was not observed, creating a new one"
                )
            try:
                await external.create(instance)
            except ProviderError as e:
                return await self._fail(instance, ctx, EventReason.CANNOT_CREATE, e)
            # The identity must be persisted before anything else can fail.
            await ctx.update_status(instance)
            self.recorder.normal(
                EventReason.CREATED,
                f"Successfully requested creation of instance "
                f"{instance.get_external_name()}",
                INSTANCE_KIND,
                name,
            )
            return await self._succeed(instance, ctx, "created")

        if not observation.resource_up_to_date:
            try:
                update = await external.update(instance)
            except ProviderError as e:
                return await self._fail(instance, ctx, EventReason.CANNOT_UPDATE, e)
            if not update.transitioned:
                # Mid-transition remotely; check again on the next poll.
                return await self._succeed(instance, ctx, "transition pending")
            self.recorder.normal(
                EventReason.UPDATED,
                f"Successfully requested update of instance "
                f"{instance.get_external_name()}",
                INSTANCE_KIND,
                name,
            )
            return await self._succeed(instance, ctx, "updated")

        return await self._succeed(instance, ctx, "up to date")
