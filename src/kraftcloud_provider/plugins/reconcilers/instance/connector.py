"""
Connector - builds an authenticated ExternalClient for an Instance.

A new client is built on every reconciliation so rotated credentials are
picked up on the next cycle.
"""

import logging
from typing import Callable, Optional

from kraftcloud_provider.apis.instance import INSTANCE_KIND, Instance
from kraftcloud_provider.apis.providerconfig import ProviderConfigUsage, TypedReference
from kraftcloud_provider.config import KraftCloudConfig, ObserveErrorPolicy
from kraftcloud_provider.errors import (
    ClientConstructionError,
    ConfigNotFoundError,
    CredentialError,
    TrackingError,
)
from kraftcloud_provider.plugins.reconcilers.base import ReconcilerContext
from kraftcloud_provider.plugins.reconcilers.instance.client import InstancesService
from kraftcloud_provider.plugins.reconcilers.instance.credentials import (
    extract_credentials,
)
from kraftcloud_provider.plugins.reconcilers.instance.external import ExternalClient
from kraftcloud_provider.plugins.reconcilers.instance.kraftcloud import (
    KraftCloudInstancesClient,
)

logger = logging.getLogger(__name__)

ServiceFactory = Callable[[bytes], InstancesService]


def kraftcloud_service_factory(
    kraftcloud_config: Optional[KraftCloudConfig] = None,
) -> ServiceFactory:
    """Return a factory building KraftCloud clients from API tokens."""
    kraftcloud_config = kraftcloud_config or KraftCloudConfig()

    def new_service(token: bytes) -> InstancesService:
        return KraftCloudInstancesClient(
            token=token.decode(),
            api_url=kraftcloud_config.api_url,
            timeout=kraftcloud_config.request_timeout,
        )

    return new_service


class Connector:
    """
    Produces an ExternalClient for an Instance by:

    1. Tracking that the Instance is using a ProviderConfig.
    2. Getting the Instance's ProviderConfig.
    3. Getting the credentials specified by the ProviderConfig.
    4. Using the credentials to form a client.
    """

    def __init__(
        self,
        ctx: ReconcilerContext,
        new_service_fn: ServiceFactory,
        observe_error_policy: ObserveErrorPolicy = ObserveErrorPolicy.ASSUME_ABSENT,
    ):
        self.ctx = ctx
        self.new_service_fn = new_service_fn
        self.observe_error_policy = observe_error_policy

    async def connect(self, instance: Instance) -> ExternalClient:
        pc_name = instance.get_provider_config_name()

        usage = ProviderConfigUsage(
            provider_config_ref=pc_name,
            resource_ref=TypedReference(kind=INSTANCE_KIND, name=instance.metadata.name),
        )
        try:
            await self.ctx.track_usage(usage)
        except Exception as e:
            raise TrackingError(f"cannot track ProviderConfig usage: {e}") from e

        try:
            pc = await self.ctx.get_provider_config(pc_name)
        except Exception as e:
            raise ConfigNotFoundError(f"cannot get ProviderConfig {pc_name}: {e}") from e
        if pc is None:
            raise ConfigNotFoundError(f"cannot get ProviderConfig {pc_name}: not found")

        try:
            data = await extract_credentials(pc.spec.credentials, self.ctx)
        except CredentialError as e:
            raise CredentialError(f"cannot get credentials: {e.message}") from e
        except Exception as e:
            raise CredentialError(f"cannot get credentials: {e}") from e

        try:
            service = self.new_service_fn(data)
        except Exception as e:
            raise ClientConstructionError(f"cannot create new Service: {e}") from e

        return ExternalClient(service, observe_error_policy=self.observe_error_policy)
