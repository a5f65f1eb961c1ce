"""
External client for KraftCloud instances.

Observes, then either creates, updates, or deletes a remote instance so it
reflects an Instance record's desired state. Each method performs at most
one decision; the reconciler decides which of them to call.
"""

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Dict

from kraftcloud_provider.apis import common
from kraftcloud_provider.apis.instance import Instance, InstanceObservation, InstanceState
from kraftcloud_provider.config import ObserveErrorPolicy
from kraftcloud_provider.errors import (
    NotFoundError,
    ProviderError,
    TransientError,
    TransitionError,
)
from kraftcloud_provider.plugins.reconcilers.instance import drift
from kraftcloud_provider.plugins.reconcilers.instance.client import (
    CreateRequest,
    CreateRequestService,
    Handler,
    InstanceRecord,
    InstancesService,
    MetroInstancesService,
)
from kraftcloud_provider.quantity import memory_megabytes

logger = logging.getLogger(__name__)


@dataclass
class ExternalObservation:
    """Verdict of a single Observe call."""

    resource_exists: bool = False
    resource_up_to_date: bool = False
    connection_details: Dict[str, bytes] = field(default_factory=dict)


@dataclass
class ExternalCreation:
    connection_details: Dict[str, bytes] = field(default_factory=dict)


@dataclass
class ExternalUpdate:
    transitioned: bool = False
    connection_details: Dict[str, bytes] = field(default_factory=dict)


def observation_from_record(record: InstanceRecord) -> InstanceObservation:
    """Project a remote instance onto the observed fields of an Instance."""
    observation = InstanceObservation(
        boot_time=timedelta(microseconds=record.boot_time_us),
        created_at=record.created_at,
        private_ip=record.private_ip,
        state=record.state.value,
    )
    if record.service_group is not None and record.service_group.domains:
        observation.dns = record.service_group.domains[0].fqdn
    return observation


class ExternalClient:
    """
    Converges one remote instance towards an Instance record.

    All calls are routed to the record's metro and address the remote
    instance by the record's external name.
    """

    def __init__(
        self,
        service: InstancesService,
        observe_error_policy: ObserveErrorPolicy = ObserveErrorPolicy.ASSUME_ABSENT,
    ):
        self.service = service
        self.observe_error_policy = observe_error_policy

    def _scoped(self, instance: Instance) -> MetroInstancesService:
        return self.service.with_metro(instance.spec.for_provider.metro)

    async def observe(self, instance: Instance) -> ExternalObservation:
        """
        Fetch the remote instance and compare it with the desired state.

        A record without an external name has never been created, so no
        remote call is made. Fetch errors are downgraded to "does not
        exist" according to the observe error policy.
        """
        external_name = instance.get_external_name()
        if not external_name:
            return ExternalObservation(resource_exists=False, resource_up_to_date=False)

        try:
            record = await self._scoped(instance).get(external_name)
        except NotFoundError:
            return ExternalObservation(resource_exists=False, resource_up_to_date=False)
        except Exception as e:
            if self.observe_error_policy == ObserveErrorPolicy.PROPAGATE_TRANSIENT:
                if isinstance(e, ProviderError):
                    raise
                raise TransientError(f"could not get the instance: {e}") from e
            logger.debug(
                f"Treating instance {external_name} as absent after fetch error: {e}"
            )
            return ExternalObservation(resource_exists=False, resource_up_to_date=False)

        instance.status.at_provider = observation_from_record(record)
        instance.status.set_conditions(common.available())

        return ExternalObservation(
            resource_exists=True,
            resource_up_to_date=drift.is_up_to_date(
                record.state, instance.spec.for_provider.desired_state
            ),
        )

    async def create(self, instance: Instance) -> ExternalCreation:
        """
        Create the remote instance and record its identity.

        Raises:
            SpecValidationError: If the memory quantity cannot be parsed or
                the API rejects the request.
            TransientError: If the API call fails.
        """
        params = instance.spec.for_provider
        memory_mb = memory_megabytes(params.memory)

        # The instance only boots straight away if the user wants it running.
        autostart = params.desired_state == InstanceState.RUNNING

        record = await self._scoped(instance).create(
            CreateRequest(
                image=params.image,
                args=list(params.args),
                memory_mb=memory_mb,
                autostart=autostart,
                services=[
                    CreateRequestService(
                        port=params.port,
                        destination_port=params.internal_port,
                        handlers=[Handler.HTTP, Handler.TLS],
                    )
                ],
            )
        )

        instance.status.set_conditions(common.creating())
        instance.set_external_name(record.uuid)
        logger.info(
            f"Created instance {record.uuid} for {instance.metadata.name} "
            f"in metro {params.metro}"
        )
        return ExternalCreation()

    async def update(self, instance: Instance) -> ExternalUpdate:
        """
        Start or stop the remote instance to match the desired run state.

        The run state is the only mutable property of an instance, so this
        issues at most one start or stop call.
        """
        external_name = instance.get_external_name()
        desired = instance.spec.for_provider.desired_state
        scoped = self._scoped(instance)

        try:
            record = await scoped.get(external_name)
        except ProviderError as e:
            raise TransitionError(f"could not get the instance state: {e}") from e

        transition = drift.plan_transition(record.state, desired)
        if transition == drift.Transition.NONE:
            if not drift.is_up_to_date(record.state, desired):
                logger.info(
                    f"Instance {external_name} is {record.state.value}, "
                    f"no transition towards {desired.value}"
                )
            return ExternalUpdate()

        try:
            if transition == drift.Transition.STOP:
                await scoped.stop(external_name, 0, False)
            else:
                await scoped.start(external_name, 0)
        except ProviderError as e:
            raise TransitionError(
                f"could not {transition.value} the instance: {e}"
            ) from e

        logger.info(f"Requested {transition.value} of instance {external_name}")
        return ExternalUpdate(transitioned=True)

    async def delete(self, instance: Instance) -> None:
        """Delete the remote instance."""
        external_name = instance.get_external_name()
        try:
            await self._scoped(instance).delete(external_name)
        except ProviderError as e:
            raise TransitionError(f"could not delete the instance: {e}") from e

        instance.status.set_conditions(common.deleting())
        logger.info(f"Deleted instance {external_name}")
