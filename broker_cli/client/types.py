"""Parameters and results of the broker adapter calls."""

from typing import Dict, Any, Optional, List
from dataclasses import dataclass, field
from enum import Enum

from broker_cli.config import DEFAULT_API_VERSION
from broker_cli.models.osb import (
    Broker, Instance, Binding, Service,
    OPERATION_IN_PROGRESS, OPERATION_SUCCEEDED, OPERATION_FAILED
)


class OperationType(Enum):
    """Kind of request an asynchronous operation was started by."""
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    UNKNOWN = "unknown"


@dataclass
class Operation:
    """State of a broker operation as reported by a last operation request."""
    state: str
    description: str = ""

    @property
    def in_progress(self) -> bool:
        return self.state == OPERATION_IN_PROGRESS

    @property
    def succeeded(self) -> bool:
        return self.state == OPERATION_SUCCEEDED

    @property
    def failed(self) -> bool:
        return self.state == OPERATION_FAILED


# Registry calls

@dataclass
class CreateBrokerParams:
    host: str
    project: str
    name: str
    title: str = ""


@dataclass
class DeleteBrokerParams:
    broker_url: str


@dataclass
class ListBrokersParams:
    host: str
    project: str


@dataclass
class ListBrokersResult:
    brokers: List[Broker] = field(default_factory=list)


@dataclass
class ListInstancesParams:
    server: str


@dataclass
class ListInstancesResult:
    instances: List[Instance] = field(default_factory=list)


@dataclass
class ListBindingsParams:
    server: str
    instance_id: str


@dataclass
class ListBindingsResult:
    bindings: List[Binding] = field(default_factory=list)


# OSB calls

@dataclass
class GetCatalogParams:
    server: str
    api_version: str = DEFAULT_API_VERSION


@dataclass
class GetCatalogResult:
    services: List[Service] = field(default_factory=list)


@dataclass
class CreateInstanceParams:
    """Parameters used to provision a service instance.

    accepts_incomplete tells the broker whether the client can handle
    asynchronous provisioning. A broker that cannot serve the request in the
    requested mode rejects it.
    """
    server: str
    instance_id: str
    service_id: str
    plan_id: str
    api_version: str = DEFAULT_API_VERSION
    accepts_incomplete: bool = False
    context: Optional[Dict[str, Any]] = None
    # CF-specific, superseded by context.
    organization_guid: Optional[str] = None
    space_guid: Optional[str] = None
    parameters: Optional[Dict[str, Any]] = None


@dataclass
class CreateInstanceResult:
    async_: bool = False
    dashboard_url: Optional[str] = None
    operation_id: Optional[str] = None


@dataclass
class DeleteInstanceParams:
    server: str
    instance_id: str
    service_id: str
    plan_id: str
    api_version: str = DEFAULT_API_VERSION
    accepts_incomplete: bool = False


@dataclass
class DeleteInstanceResult:
    async_: bool = False
    operation_id: Optional[str] = None


@dataclass
class UpdateInstanceParams:
    server: str
    instance_id: str
    service_id: str
    plan_id: Optional[str] = None
    api_version: str = DEFAULT_API_VERSION
    accepts_incomplete: bool = False
    context: Optional[Dict[str, Any]] = None
    parameters: Optional[Dict[str, Any]] = None
    previous_service_id: Optional[str] = None
    previous_plan_id: Optional[str] = None
    previous_organization_id: Optional[str] = None
    previous_space_id: Optional[str] = None


@dataclass
class UpdateInstanceResult:
    async_: bool = False
    operation_id: Optional[str] = None


@dataclass
class CreateBindingParams:
    server: str
    instance_id: str
    binding_id: str
    service_id: str
    plan_id: str
    api_version: str = DEFAULT_API_VERSION
    accepts_incomplete: bool = False
    context: Optional[Dict[str, Any]] = None
    app_guid: Optional[str] = None
    bind_resource: Optional[Dict[str, Any]] = None
    parameters: Optional[Dict[str, Any]] = None


@dataclass
class CreateBindingResult:
    async_: bool = False
    credentials: Optional[Dict[str, Any]] = None
    syslog_drain_url: Optional[str] = None
    route_service_url: Optional[str] = None
    volume_mounts: Optional[List[Any]] = None
    operation_id: Optional[str] = None


@dataclass
class DeleteBindingParams:
    server: str
    instance_id: str
    binding_id: str
    service_id: str
    plan_id: str
    api_version: str = DEFAULT_API_VERSION
    accepts_incomplete: bool = False


@dataclass
class DeleteBindingResult:
    async_: bool = False
    operation_id: Optional[str] = None


@dataclass
class LastOperationParams:
    """Common parameters of a last operation request.

    service_id, plan_id and operation_id are sent only when set and must
    echo the values of the request that started the operation.
    """
    api_version: str = DEFAULT_API_VERSION
    service_id: Optional[str] = None
    plan_id: Optional[str] = None
    operation_id: Optional[str] = None
    operation_type: OperationType = OperationType.UNKNOWN


@dataclass
class InstanceLastOperationParams:
    server: str
    instance_id: str
    last_operation: LastOperationParams = field(default_factory=LastOperationParams)


@dataclass
class BindingLastOperationParams:
    server: str
    instance_id: str
    binding_id: str
    last_operation: LastOperationParams = field(default_factory=LastOperationParams)
