"""
KraftCloud Instances Client - aiohttp implementation of InstancesService.

Speaks the KraftCloud v1 REST API. Responses wrap results in an envelope
of the form ``{"status": ..., "data": {"entries": [...]}}``; only the first
entry is used since every call addresses a single instance.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

import aiohttp

from kraftcloud_provider.config import DEFAULT_API_URL
from kraftcloud_provider.errors import (
    NotFoundError,
    SpecValidationError,
    TransientError,
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

logger = logging.getLogger(__name__)


def decode_instance(entry: Dict[str, Any]) -> InstanceRecord:
    """Decode a single response entry into an InstanceRecord."""
    service_group = None
    raw_group = entry.get("service_group")
    if raw_group:
        service_group = ServiceGroup(
            uuid=raw_group.get("uuid", ""),
            name=raw_group.get("name", ""),
            domains=[
                ServiceDomain(fqdn=d["fqdn"])
                for d in raw_group.get("domains") or []
                if d.get("fqdn")
            ],
        )

    return InstanceRecord(
        uuid=entry.get("uuid", ""),
        name=entry.get("name", ""),
        state=RemoteInstanceState(entry.get("state", "")),
        boot_time_us=int(entry.get("boot_time_us") or 0),
        created_at=entry.get("created_at", ""),
        private_ip=entry.get("private_ip", ""),
        service_group=service_group,
    )


def encode_create_request(request: CreateRequest) -> Dict[str, Any]:
    """Encode a CreateRequest as a request body."""
    body: Dict[str, Any] = {
        "image": request.image,
        "args": request.args,
        "autostart": request.autostart,
    }
    if request.memory_mb is not None:
        body["memory_mb"] = request.memory_mb
    if request.services:
        body["service_group"] = {
            "services": [
                {
                    "port": service.port,
                    "destination_port": service.destination_port,
                    "handlers": [h.value for h in service.handlers],
                }
                for service in request.services
            ]
        }
    return body


class KraftCloudInstancesClient(InstancesService):
    """Authenticated client for the KraftCloud instances API."""

    def __init__(
        self,
        token: str,
        api_url: str = DEFAULT_API_URL,
        timeout: Optional[float] = None,
    ):
        self.token = token
        self.api_url = api_url
        self.timeout = timeout

    def with_metro(self, metro: str) -> "KraftCloudMetroClient":
        return KraftCloudMetroClient(self, metro)

    def base_url(self, metro: str) -> str:
        return self.api_url.format(metro=metro).rstrip("/")

    def _get_headers(self) -> Dict[str, str]:
        """Get HTTP headers for KraftCloud API requests."""
        return {
            "Accept": "application/json",
            "Authorization": f"Bearer {self.token}",
        }

    async def request(
        self,
        method: str,
        url: str,
        payload: Optional[Any] = None,
    ) -> Dict[str, Any]:
        """
        Perform a request and return the first response entry.

        Raises:
            NotFoundError: On HTTP 404 or an entry reporting a missing instance.
            SpecValidationError: On HTTP 400 or 422.
            TransientError: On any other failure.
        """
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.request(
                    method, url, headers=self._get_headers(), json=payload
                ) as response:
                    status = response.status
                    try:
                        body = await response.json(content_type=None)
                    except ValueError as e:
                        # Gateways answer errors with HTML; the status still counts.
                        if status < 400:
                            raise TransientError(
                                f"{method} {url} returned invalid JSON: {e}"
                            ) from e
                        body = None
        except aiohttp.ClientError as e:
            raise TransientError(f"{method} {url} failed: {e}") from e
        except asyncio.TimeoutError as e:
            raise TransientError(f"{method} {url} timed out") from e

        message = _error_message(body) or f"HTTP {status}"
        if status == 404:
            raise NotFoundError(message)
        if status in (400, 422):
            raise SpecValidationError(message)
        if status >= 400:
            raise TransientError(message)

        return _first_entry(body)


def _error_message(body: Any) -> str:
    if not isinstance(body, dict):
        return ""
    if body.get("message"):
        return str(body["message"])
    errors = body.get("errors") or []
    if errors and isinstance(errors[0], dict):
        return str(errors[0].get("message", ""))
    return ""


def _first_entry(body: Any) -> Dict[str, Any]:
    entries = []
    if isinstance(body, dict):
        entries = (body.get("data") or {}).get("entries") or []
    if not entries:
        raise NotFoundError("response contained no instance entries")

    entry = entries[0]
    if entry.get("status") == "error":
        message = entry.get("message", "unknown error")
        if "not found" in message.lower():
            raise NotFoundError(message)
        raise TransientError(message)
    return entry


class KraftCloudMetroClient(MetroInstancesService):
    """Instances client bound to one metro."""

    def __init__(self, client: KraftCloudInstancesClient, metro: str):
        self.client = client
        self.metro = metro

    def _url(self, path: str) -> str:
        return f"{self.client.base_url(self.metro)}{path}"

    async def get(self, uuid: str) -> InstanceRecord:
        entry = await self.client.request("GET", self._url(f"/instances/{uuid}"))
        return decode_instance(entry)

    async def create(self, request: CreateRequest) -> InstanceRecord:
        logger.debug(f"Creating instance from {request.image} in {self.metro}")
        entry = await self.client.request(
            "POST", self._url("/instances"), encode_create_request(request)
        )
        return decode_instance(entry)

    async def start(self, uuid: str, wait_timeout_ms: int = 0) -> InstanceRecord:
        entry = await self.client.request(
            "PUT",
            self._url(f"/instances/{uuid}/start"),
            {"wait_timeout_ms": wait_timeout_ms},
        )
        return decode_instance(entry)

    async def stop(
        self, uuid: str, drain_timeout_ms: int = 0, force: bool = False
    ) -> InstanceRecord:
        entry = await self.client.request(
            "PUT",
            self._url(f"/instances/{uuid}/stop"),
            {"drain_timeout_ms": drain_timeout_ms, "force": force},
        )
        return decode_instance(entry)

    async def delete(self, uuid: str) -> InstanceRecord:
        entry = await self.client.request("DELETE", self._url(f"/instances/{uuid}"))
        return decode_instance(entry)
