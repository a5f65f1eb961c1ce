"""
ProviderConfig API types.

A ProviderConfig tells the provider where to find the KraftCloud API token
used to authenticate. Managed resources reference one by name.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from kraftcloud_provider.apis.common import ObjectMeta
from kraftcloud_provider.apis.instance import API_VERSION

PROVIDER_CONFIG_KIND = "ProviderConfig"


class CredentialsSource(Enum):
    SECRET = "Secret"
    ENVIRONMENT = "Environment"
    FILESYSTEM = "Filesystem"
    INLINE = "Inline"


class SecretKeySelector(BaseModel):
    name: str
    namespace: str = "default"
    key: str = "token"


class EnvSelector(BaseModel):
    name: str


class FsSelector(BaseModel):
    path: str


class ProviderCredentials(BaseModel):
    """Required credentials and where to find them."""

    model_config = ConfigDict(populate_by_name=True)

    source: CredentialsSource
    secret_ref: Optional[SecretKeySelector] = Field(default=None, alias="secretRef")
    env: Optional[EnvSelector] = None
    fs: Optional[FsSelector] = None
    inline: Optional[str] = Field(default=None, repr=False)

    @model_validator(mode="after")
    def check_selector(self) -> "ProviderCredentials":
        required = {
            CredentialsSource.SECRET: ("secretRef", self.secret_ref),
            CredentialsSource.ENVIRONMENT: ("env", self.env),
            CredentialsSource.FILESYSTEM: ("fs", self.fs),
            CredentialsSource.INLINE: ("inline", self.inline),
        }
        field_name, value = required[self.source]
        if value is None:
            raise ValueError(
                f"credentials source {self.source.value} requires '{field_name}'"
            )
        return self


class ProviderConfigSpec(BaseModel):
    credentials: ProviderCredentials


class ProviderConfig(BaseModel):
    """Configures how the provider connects to KraftCloud."""

    model_config = ConfigDict(populate_by_name=True)

    api_version: str = Field(default=API_VERSION, alias="apiVersion")
    kind: str = PROVIDER_CONFIG_KIND
    metadata: ObjectMeta
    spec: ProviderConfigSpec


class TypedReference(BaseModel):
    kind: str
    name: str


class ProviderConfigUsage(BaseModel):
    """Records that a managed resource is using a ProviderConfig."""

    model_config = ConfigDict(populate_by_name=True)

    provider_config_ref: str = Field(..., alias="providerConfigRef")
    resource_ref: TypedReference = Field(..., alias="resourceRef")
