"""
Manifest Context - ReconcilerContext backed by a YAML manifest file.

Lets the instance reconciler run standalone. The manifest may hold any
number of ``Instance``, ``ProviderConfig`` and ``Secret`` documents and is
re-read on every poll. Desired fields always come from the file; status,
annotations and finalizers are kept in memory. An Instance that disappears
from the file is marked for deletion and kept until the reconciler removes
its finalizer.
"""

import asyncio
import base64
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple

import yaml
from pydantic import ValidationError

from kraftcloud_provider.apis.instance import INSTANCE_KIND, Instance
from kraftcloud_provider.apis.providerconfig import (
    PROVIDER_CONFIG_KIND,
    ProviderConfig,
    ProviderConfigUsage,
)
from kraftcloud_provider.plugins.reconcilers.base import (
    ReconcilerContext,
    ReconcileResult,
)

logger = logging.getLogger(__name__)

SECRET_KIND = "Secret"


class ManifestError(Exception):
    """Raised when the manifest cannot be read or parsed."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


def decode_secret(doc: Dict[str, Any]) -> Dict[str, bytes]:
    """Decode a Secret document's ``data`` (base64) and ``stringData`` fields."""
    data: Dict[str, bytes] = {}
    for key, value in (doc.get("data") or {}).items():
        data[key] = base64.b64decode(value)
    for key, value in (doc.get("stringData") or {}).items():
        data[key] = str(value).encode()
    return data


class ManifestContext(ReconcilerContext):
    """ReconcilerContext reading desired state from a YAML manifest."""

    def __init__(
        self,
        manifest_path: Path,
        status_path: Optional[Path] = None,
        shutdown_event: Optional[asyncio.Event] = None,
        allow_empty: bool = False,
    ):
        super().__init__(shutdown_event)
        self.manifest_path = Path(manifest_path)
        self.status_path = Path(status_path) if status_path else None
        # An empty manifest deletes every known instance.
        self.allow_empty = allow_empty

        self._instances: Dict[str, Instance] = {}
        self._provider_configs: Dict[str, ProviderConfig] = {}
        self._secrets: Dict[Tuple[str, str], Dict[str, bytes]] = {}
        self._usages: Dict[str, Set[str]] = {}
        self._last_results: Dict[str, ReconcileResult] = {}

    def load(self) -> None:
        """
        Re-read the manifest and merge it into the known records.

        Raises:
            ManifestError: If the file cannot be read, a document is invalid,
                or the file holds no documents and allow_empty is not set.
        """
        try:
            with open(self.manifest_path, "r") as f:
                docs = [d for d in yaml.safe_load_all(f) if d]
        except (OSError, yaml.YAMLError) as e:
            raise ManifestError(f"cannot read manifest {self.manifest_path}: {e}") from e

        if not docs and not self.allow_empty:
            raise ManifestError(
                f"manifest {self.manifest_path} contains no documents, "
                f"refusing to delete every instance"
            )

        instances: Dict[str, Instance] = {}
        provider_configs: Dict[str, ProviderConfig] = {}
        secrets: Dict[Tuple[str, str], Dict[str, bytes]] = {}

        for doc in docs:
            kind = doc.get("kind")
            try:
                if kind == INSTANCE_KIND:
                    instance = Instance.model_validate(doc)
                    instances[instance.metadata.name] = instance
                elif kind == PROVIDER_CONFIG_KIND:
                    pc = ProviderConfig.model_validate(doc)
                    provider_configs[pc.metadata.name] = pc
                elif kind == SECRET_KIND:
                    meta = doc.get("metadata") or {}
                    key = (meta.get("namespace", "default"), meta["name"])
                    secrets[key] = decode_secret(doc)
                else:
                    logger.warning(f"Ignoring document of unknown kind: {kind}")
            except (ValidationError, KeyError, ValueError) as e:
                raise ManifestError(f"invalid {kind} document: {e}") from e

        self._provider_configs = provider_configs
        self._secrets = secrets
        self._merge_instances(instances)

    def _merge_instances(self, desired: Dict[str, Instance]) -> None:
        for name, instance in desired.items():
            known = self._instances.get(name)
            if known is not None:
                # Keep what the reconciler owns.
                instance.status = known.status
                instance.metadata.annotations = {
                    **instance.metadata.annotations,
                    **known.metadata.annotations,
                }
                instance.metadata.finalizers = known.metadata.finalizers
                if known.spec != instance.spec:
                    instance.metadata.generation = known.metadata.generation + 1
                else:
                    instance.metadata.generation = known.metadata.generation
            self._instances[name] = instance

        now = datetime.now(timezone.utc)
        for name, known in self._instances.items():
            if name not in desired and not known.is_being_deleted():
                logger.info(f"Instance {name} removed from manifest, deleting")
                known.metadata.deletion_timestamp = now

    async def get_resources_needing_reconciliation(
        self,
        resource_type_names: List[str],
        limit: int = 10,
    ) -> List[Instance]:
        # Every record is re-observed on each poll; limit is advisory here.
        if INSTANCE_KIND not in resource_type_names:
            return []
        self.load()
        return list(self._instances.values())

    async def get_provider_config(self, name: str) -> Optional[ProviderConfig]:
        return self._provider_configs.get(name)

    async def get_secret(self, namespace: str, name: str) -> Optional[Dict[str, bytes]]:
        return self._secrets.get((namespace, name))

    async def track_usage(self, usage: ProviderConfigUsage) -> None:
        self._usages.setdefault(usage.provider_config_ref, set()).add(
            usage.resource_ref.name
        )

    def get_usages(self, provider_config_name: str) -> Set[str]:
        return set(self._usages.get(provider_config_name, set()))

    async def update_status(self, resource: Instance) -> None:
        if resource.metadata.name not in self._instances:
            return
        self._instances[resource.metadata.name] = resource
        self.write_status()

    async def remove_finalizer(self, resource: Instance, finalizer: str) -> None:
        if resource.remove_finalizer(finalizer):
            await self.update_status(resource)

    async def hard_delete_resource(self, resource: Instance) -> bool:
        name = resource.metadata.name
        known = self._instances.get(name)
        if known is None or not known.is_being_deleted() or known.metadata.finalizers:
            return False
        del self._instances[name]
        for users in self._usages.values():
            users.discard(name)
        self._last_results.pop(name, None)
        logger.info(f"Forgot deleted instance {name}")
        self.write_status()
        return True

    async def record_reconciliation(
        self,
        resource: Instance,
        result: ReconcileResult,
        duration_seconds: Optional[float] = None,
        drift_detected: bool = False,
    ) -> None:
        await super().record_reconciliation(
            resource, result, duration_seconds, drift_detected
        )
        if resource.metadata.name in self._instances:
            self._last_results[resource.metadata.name] = result

    def get_instance(self, name: str) -> Optional[Instance]:
        return self._instances.get(name)

    def snapshot(self) -> List[Dict[str, Any]]:
        """Return the status of every known instance as plain data."""
        return [
            {
                "name": name,
                "externalName": instance.get_external_name(),
                "status": instance.status.model_dump(mode="json", by_alias=True),
            }
            for name, instance in sorted(self._instances.items())
        ]

    def write_status(self) -> None:
        if self.status_path is None:
            return
        with open(self.status_path, "w") as f:
            yaml.safe_dump(self.snapshot(), f, sort_keys=False)
