"""Unit tests for the instance connector."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from kraftcloud_provider.config import KraftCloudConfig, ObserveErrorPolicy
from kraftcloud_provider.errors import (
    ClientConstructionError,
    ConfigNotFoundError,
    CredentialError,
    TrackingError,
)
from kraftcloud_provider.plugins.reconcilers.instance.connector import (
    Connector,
    kraftcloud_service_factory,
)
from kraftcloud_provider.plugins.reconcilers.instance.external import ExternalClient
from kraftcloud_provider.plugins.reconcilers.instance.kraftcloud import (
    KraftCloudInstancesClient,
)


@pytest.mark.asyncio
class TestConnect:
    """Tests for Connector.connect."""

    async def test_connect_builds_client_from_secret(
        self, ctx, stub_service, make_instance
    ):
        new_service_fn = MagicMock(return_value=stub_service)
        connector = Connector(ctx, new_service_fn)

        external = await connector.connect(make_instance())

        assert isinstance(external, ExternalClient)
        assert external.service is stub_service
        new_service_fn.assert_called_once_with(b"secret-token")

    async def test_connect_tracks_usage(self, ctx, stub_service, make_instance):
        connector = Connector(ctx, lambda token: stub_service)

        await connector.connect(make_instance(name="web"))

        assert len(ctx.usages) == 1
        assert ctx.usages[0].provider_config_ref == "default"
        assert ctx.usages[0].resource_ref.kind == "Instance"
        assert ctx.usages[0].resource_ref.name == "web"

    async def test_connect_passes_observe_policy(self, ctx, stub_service, make_instance):
        connector = Connector(
            ctx,
            lambda token: stub_service,
            observe_error_policy=ObserveErrorPolicy.PROPAGATE_TRANSIENT,
        )

        external = await connector.connect(make_instance())

        assert external.observe_error_policy == ObserveErrorPolicy.PROPAGATE_TRANSIENT

    async def test_tracking_failure(self, ctx, stub_service, make_instance):
        ctx.track_usage = AsyncMock(side_effect=RuntimeError("store unavailable"))
        new_service_fn = MagicMock(return_value=stub_service)
        connector = Connector(ctx, new_service_fn)

        with pytest.raises(TrackingError, match="cannot track ProviderConfig usage"):
            await connector.connect(make_instance())

        new_service_fn.assert_not_called()

    async def test_missing_provider_config(self, ctx, stub_service, make_instance):
        ctx.provider_configs.clear()
        connector = Connector(ctx, lambda token: stub_service)

        with pytest.raises(ConfigNotFoundError, match="cannot get ProviderConfig default"):
            await connector.connect(make_instance())

    async def test_provider_config_lookup_failure(self, ctx, stub_service, make_instance):
        ctx.get_provider_config = AsyncMock(side_effect=RuntimeError("boom"))
        connector = Connector(ctx, lambda token: stub_service)

        with pytest.raises(ConfigNotFoundError, match="boom"):
            await connector.connect(make_instance())

    async def test_missing_secret(self, ctx, stub_service, make_instance):
        ctx.secrets.clear()
        connector = Connector(ctx, lambda token: stub_service)

        with pytest.raises(CredentialError, match="cannot get credentials"):
            await connector.connect(make_instance())

    async def test_client_construction_failure(self, ctx, make_instance):
        def broken_factory(token):
            raise ValueError("bad token")

        connector = Connector(ctx, broken_factory)

        with pytest.raises(ClientConstructionError, match="cannot create new Service"):
            await connector.connect(make_instance())

    async def test_new_client_every_cycle(self, ctx, stub_service, make_instance):
        new_service_fn = MagicMock(return_value=stub_service)
        connector = Connector(ctx, new_service_fn)

        await connector.connect(make_instance())
        await connector.connect(make_instance())

        assert new_service_fn.call_count == 2


class TestKraftCloudServiceFactory:
    def test_builds_configured_client(self):
        factory = kraftcloud_service_factory(
            KraftCloudConfig(api_url="http://localhost:8080/{metro}", request_timeout=5.0)
        )

        client = factory(b"token-123")

        assert isinstance(client, KraftCloudInstancesClient)
        assert client.token == "token-123"
        assert client.base_url("fra0") == "http://localhost:8080/fra0"
        assert client.timeout == 5.0

    def test_default_config(self):
        client = kraftcloud_service_factory()(b"token")

        assert client.base_url("was1") == "https://api.was1.kraft.cloud/v1"
        assert client.timeout is None
