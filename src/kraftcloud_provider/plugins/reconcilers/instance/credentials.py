"""Credential extraction for ProviderConfigs."""

import logging
import os

from kraftcloud_provider.apis.providerconfig import (
    CredentialsSource,
    ProviderCredentials,
)
from kraftcloud_provider.errors import CredentialError
from kraftcloud_provider.plugins.reconcilers.base import ReconcilerContext

logger = logging.getLogger(__name__)


async def extract_credentials(
    credentials: ProviderCredentials, ctx: ReconcilerContext
) -> bytes:
    """
    Extract the raw credential bytes described by a ProviderConfig.

    Args:
        credentials: The credentials block of a ProviderConfig spec.
        ctx: Context used to look up referenced secrets.

    Returns:
        The credential bytes, with surrounding whitespace stripped.

    Raises:
        CredentialError: If the credentials cannot be found or are empty.
    """
    source = credentials.source

    if source == CredentialsSource.SECRET:
        ref = credentials.secret_ref
        secret = await ctx.get_secret(ref.namespace, ref.name)
        if secret is None:
            raise CredentialError(f"secret {ref.namespace}/{ref.name} not found")
        if ref.key not in secret:
            raise CredentialError(
                f"secret {ref.namespace}/{ref.name} has no key '{ref.key}'"
            )
        data = secret[ref.key]

    elif source == CredentialsSource.ENVIRONMENT:
        value = os.getenv(credentials.env.name)
        if value is None:
            raise CredentialError(
                f"environment variable {credentials.env.name} is not set"
            )
        data = value.encode()

    elif source == CredentialsSource.FILESYSTEM:
        try:
            with open(credentials.fs.path, "rb") as f:
                data = f.read()
        except OSError as e:
            raise CredentialError(
                f"cannot read credentials file {credentials.fs.path}: {e}"
            ) from e

    elif source == CredentialsSource.INLINE:
        data = credentials.inline.encode()

    else:
        raise CredentialError(f"unsupported credentials source: {source}")

    data = data.strip()
    if not data:
        raise CredentialError(f"credentials from source {source.value} are empty")

    logger.debug(f"Extracted credentials from source {source.value}")
    return data
