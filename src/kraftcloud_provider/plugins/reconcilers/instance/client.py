"""
Instances client contract.

The reconciler only talks to KraftCloud through these interfaces, so tests
can inject a stub and the HTTP transport stays swappable. Every call is
scoped to a metro: an instance created in one metro cannot be found from
another.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class RemoteInstanceState(Enum):
    """Run states reported by the KraftCloud API."""

    RUNNING = "running"
    STOPPED = "stopped"
    STARTING = "starting"
    STOPPING = "stopping"
    DRAINING = "draining"
    STANDBY = "standby"
    UNKNOWN = "unknown"

    @classmethod
    def _missing_(cls, value):
        return cls.UNKNOWN


class Handler(Enum):
    """Connection handlers of a published service."""

    HTTP = "http"
    TLS = "tls"


@dataclass
class ServiceDomain:
    fqdn: str


@dataclass
class ServiceGroup:
    uuid: str = ""
    name: str = ""
    domains: List[ServiceDomain] = field(default_factory=list)


@dataclass
class InstanceRecord:
    """A single instance as returned by the API."""

    uuid: str
    name: str = ""
    state: RemoteInstanceState = RemoteInstanceState.UNKNOWN
    boot_time_us: int = 0
    created_at: str = ""
    private_ip: str = ""
    service_group: Optional[ServiceGroup] = None


@dataclass
class CreateRequestService:
    port: int
    destination_port: int
    handlers: List[Handler] = field(default_factory=list)


@dataclass
class CreateRequest:
    image: str
    args: List[str] = field(default_factory=list)
    memory_mb: Optional[int] = None
    autostart: bool = True
    services: List[CreateRequestService] = field(default_factory=list)


class MetroInstancesService(ABC):
    """Instance operations bound to a single metro."""

    @abstractmethod
    async def get(self, uuid: str) -> InstanceRecord:
        """
        Fetch an instance.

        Raises:
            NotFoundError: If the instance does not exist.
            TransientError: If the API could not be reached or failed.
        """
        pass

    @abstractmethod
    async def create(self, request: CreateRequest) -> InstanceRecord:
        """
        Create an instance.

        Raises:
            SpecValidationError: If the API rejected the request.
            TransientError: If the API could not be reached or failed.
        """
        pass

    @abstractmethod
    async def start(self, uuid: str, wait_timeout_ms: int = 0) -> InstanceRecord:
        pass

    @abstractmethod
    async def stop(
        self, uuid: str, drain_timeout_ms: int = 0, force: bool = False
    ) -> InstanceRecord:
        pass

    @abstractmethod
    async def delete(self, uuid: str) -> InstanceRecord:
        pass


class InstancesService(ABC):
    """Entry point for instance operations."""

    @abstractmethod
    def with_metro(self, metro: str) -> MetroInstancesService:
        """Bind subsequent calls to the given metro."""
        pass
