"""
Instance API types.

An Instance describes a single KraftCloud compute instance: the parameters
a user wants it to have and the fields observed from the remote API.
"""

from datetime import timedelta
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from kraftcloud_provider.apis.common import ConditionedStatus, ManagedResource

GROUP = "compute.kraftcloud.crossplane.io"
VERSION = "v1alpha1"
API_VERSION = f"{GROUP}/{VERSION}"
INSTANCE_KIND = "Instance"
INSTANCE_GROUP_KIND = f"{INSTANCE_KIND}.{GROUP}"


class InstanceState(Enum):
    """The desired running state of an instance."""

    RUNNING = "running"
    STOPPED = "stopped"


class InstanceParameters(BaseModel):
    """The configurable fields of an Instance."""

    model_config = ConfigDict(populate_by_name=True)

    metro: str
    image: str
    memory: str
    args: List[str] = Field(default_factory=list)
    port: int = Field(..., ge=1, le=65535)
    internal_port: int = Field(..., ge=1, le=65535, alias="internalPort")
    desired_state: InstanceState = Field(
        default=InstanceState.RUNNING, alias="desiredState"
    )


class InstanceObservation(BaseModel):
    """The observable fields of an Instance."""

    model_config = ConfigDict(populate_by_name=True)

    boot_time: Optional[timedelta] = Field(default=None, alias="bootTime")
    dns: str = ""
    created_at: str = Field(default="", alias="createdAt")
    private_ip: str = Field(default="", alias="privateIP")
    state: str = ""


class ProviderConfigReference(BaseModel):
    name: str = "default"


class InstanceSpec(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    for_provider: InstanceParameters = Field(..., alias="forProvider")
    provider_config_ref: ProviderConfigReference = Field(
        default_factory=ProviderConfigReference, alias="providerConfigRef"
    )


class InstanceStatus(ConditionedStatus):
    at_provider: InstanceObservation = Field(
        default_factory=InstanceObservation, alias="atProvider"
    )


class Instance(ManagedResource):
    """A managed KraftCloud instance."""

    api_version: str = Field(default=API_VERSION, alias="apiVersion")
    kind: str = INSTANCE_KIND
    spec: InstanceSpec
    status: InstanceStatus = Field(default_factory=InstanceStatus)

    def get_provider_config_name(self) -> str:
        return self.spec.provider_config_ref.name
