"""
API types for the KraftCloud provider.

Records are pydantic models shaped like Kubernetes managed resources and
accept the camelCase field names used in manifests.
"""

from kraftcloud_provider.apis.common import (
    ANNOTATION_EXTERNAL_NAME,
    FINALIZER,
    Condition,
    ConditionReason,
    ConditionStatus,
    ConditionType,
    ObjectMeta,
)
from kraftcloud_provider.apis.instance import (
    Instance,
    InstanceObservation,
    InstanceParameters,
    InstanceSpec,
    InstanceState,
)
from kraftcloud_provider.apis.providerconfig import (
    CredentialsSource,
    ProviderConfig,
    ProviderConfigUsage,
    ProviderCredentials,
)

__all__ = [
    "ANNOTATION_EXTERNAL_NAME",
    "FINALIZER",
    "Condition",
    "ConditionReason",
    "ConditionStatus",
    "ConditionType",
    "ObjectMeta",
    "Instance",
    "InstanceObservation",
    "InstanceParameters",
    "InstanceSpec",
    "InstanceState",
    "CredentialsSource",
    "ProviderConfig",
    "ProviderConfigUsage",
    "ProviderCredentials",
]
