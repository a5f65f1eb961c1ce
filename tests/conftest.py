"""Pytest configuration and fixtures."""

from typing import Dict, List, Optional, Tuple

import pytest

from kraftcloud_provider.apis.instance import Instance
from kraftcloud_provider.apis.providerconfig import ProviderConfig, ProviderConfigUsage
from kraftcloud_provider.errors import NotFoundError
from kraftcloud_provider.plugins.reconcilers.base import (
    ReconcilerContext,
    ReconcileResult,
)
from kraftcloud_provider.plugins.reconcilers.instance.client import (
    CreateRequest,
    InstanceRecord,
    InstancesService,
    MetroInstancesService,
    RemoteInstanceState,
    ServiceDomain,
    ServiceGroup,
)


class StubMetroInstances(MetroInstancesService):
    """Metro-scoped view over a StubInstancesService."""

    def __init__(self, backend: "StubInstancesService", metro: str):
        self.backend = backend
        self.metro = metro

    def _call(self, op: str, *args):
        self.backend.calls.append((op, self.metro) + args)
        error = self.backend.errors.get(op)
        if error is not None:
            raise error

    def _lookup(self, uuid: str) -> InstanceRecord:
        record = self.backend.instances.get((self.metro, uuid))
        if record is None:
            raise NotFoundError(f"instance {uuid} not found")
        return record

    async def get(self, uuid: str) -> InstanceRecord:
        self._call("get", uuid)
        return self._lookup(uuid)

    async def create(self, request: CreateRequest) -> InstanceRecord:
        self._call("create", request)
        self.backend.created += 1
        uuid = f"uuid-{self.backend.created}"
        record = InstanceRecord(
            uuid=uuid,
            name=f"instance-{self.backend.created}",
            state=(
                RemoteInstanceState.RUNNING
                if request.autostart
                else RemoteInstanceState.STOPPED
            ),
            boot_time_us=1500,
            created_at="2024-01-15T10:30:00Z",
            private_ip="10.0.0.2",
            service_group=ServiceGroup(
                uuid="sg-1",
                domains=[ServiceDomain(fqdn=f"{uuid}.fra0.kraft.host")],
            ),
        )
        self.backend.instances[(self.metro, uuid)] = record
        return record

    async def start(self, uuid: str, wait_timeout_ms: int = 0) -> InstanceRecord:
        self._call("start", uuid, wait_timeout_ms)
        record = self._lookup(uuid)
        record.state = RemoteInstanceState.RUNNING
        return record

    async def stop(
        self, uuid: str, drain_timeout_ms: int = 0, force: bool = False
    ) -> InstanceRecord:
        self._call("stop", uuid, drain_timeout_ms, force)
        record = self._lookup(uuid)
        record.state = RemoteInstanceState.STOPPED
        return record

    async def delete(self, uuid: str) -> InstanceRecord:
        self._call("delete", uuid)
        record = self._lookup(uuid)
        del self.backend.instances[(self.metro, uuid)]
        return record


class StubInstancesService(InstancesService):
    """In-memory instances service that records every call."""

    def __init__(self):
        self.instances: Dict[Tuple[str, str], InstanceRecord] = {}
        self.calls: List[tuple] = []
        self.errors: Dict[str, Exception] = {}
        self.created = 0

    def with_metro(self, metro: str) -> StubMetroInstances:
        return StubMetroInstances(self, metro)

    def add(
        self,
        uuid: str,
        state: RemoteInstanceState,
        metro: str = "fra0",
    ) -> InstanceRecord:
        record = InstanceRecord(
            uuid=uuid,
            state=state,
            boot_time_us=2_000_000,
            created_at="2024-01-15T10:30:00Z",
            private_ip="10.0.0.7",
        )
        self.instances[(metro, uuid)] = record
        return record

    def count(self, op: str) -> int:
        return sum(1 for call in self.calls if call[0] == op)


class FakeContext(ReconcilerContext):
    """In-memory ReconcilerContext."""

    def __init__(self):
        super().__init__()
        self.instances: Dict[str, Instance] = {}
        self.provider_configs: Dict[str, ProviderConfig] = {}
        self.secrets: Dict[Tuple[str, str], Dict[str, bytes]] = {}
        self.usages: List[ProviderConfigUsage] = []
        self.status_updates = 0
        self.deleted: List[str] = []
        self.history: List[ReconcileResult] = []

    async def get_resources_needing_reconciliation(self, resource_type_names, limit=10):
        return list(self.instances.values())

    async def get_provider_config(self, name: str) -> Optional[ProviderConfig]:
        return self.provider_configs.get(name)

    async def get_secret(self, namespace: str, name: str):
        return self.secrets.get((namespace, name))

    async def track_usage(self, usage: ProviderConfigUsage) -> None:
        self.usages.append(usage)

    async def update_status(self, resource) -> None:
        self.status_updates += 1

    async def remove_finalizer(self, resource, finalizer: str) -> None:
        resource.remove_finalizer(finalizer)

    async def hard_delete_resource(self, resource) -> bool:
        if resource.metadata.finalizers:
            return False
        self.instances.pop(resource.metadata.name, None)
        self.deleted.append(resource.metadata.name)
        return True

    async def record_reconciliation(
        self, resource, result, duration_seconds=None, drift_detected=False
    ) -> None:
        self.history.append(result)


@pytest.fixture
def stub_service():
    return StubInstancesService()


@pytest.fixture
def provider_config():
    return ProviderConfig.model_validate(
        {
            "apiVersion": "compute.kraftcloud.crossplane.io/v1alpha1",
            "kind": "ProviderConfig",
            "metadata": {"name": "default"},
            "spec": {
                "credentials": {
                    "source": "Secret",
                    "secretRef": {
                        "name": "kraftcloud-creds",
                        "namespace": "crossplane-system",
                        "key": "token",
                    },
                }
            },
        }
    )


@pytest.fixture
def ctx(provider_config):
    context = FakeContext()
    context.provider_configs["default"] = provider_config
    context.secrets[("crossplane-system", "kraftcloud-creds")] = {
        "token": b"secret-token\n"
    }
    return context


@pytest.fixture
def make_instance():
    """Factory for Instance records."""

    def _make(
        name: str = "web",
        external_name: str = "",
        desired_state: str = "running",
        memory: str = "256Mi",
        metro: str = "fra0",
    ) -> Instance:
        annotations = {}
        if external_name:
            annotations["crossplane.io/external-name"] = external_name
        return Instance.model_validate(
            {
                "apiVersion": "compute.kraftcloud.crossplane.io/v1alpha1",
                "kind": "Instance",
                "metadata": {"name": name, "annotations": annotations},
                "spec": {
                    "forProvider": {
                        "metro": metro,
                        "image": "unikraft.io/app:v1",
                        "memory": memory,
                        "args": ["--port", "8080"],
                        "port": 443,
                        "internalPort": 8080,
                        "desiredState": desired_state,
                    }
                },
            }
        )

    return _make
