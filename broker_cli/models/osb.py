"""Open Service Broker API data models.

Field names follow the wire format, so the registry resources keep their
camelCase ``createTime`` while the OSB v2 bodies are snake_case.
"""

from pydantic import BaseModel, Field, field_validator
from typing import Dict, Any, Optional, List


OPERATION_IN_PROGRESS = "in progress"
OPERATION_SUCCEEDED = "succeeded"
OPERATION_FAILED = "failed"

OPERATION_STATES = [OPERATION_IN_PROGRESS, OPERATION_SUCCEEDED, OPERATION_FAILED]


class WireModel(BaseModel):
    """Base model for request and response bodies."""

    def to_wire(self) -> Dict[str, Any]:
        """Serialize for the wire, leaving out unset optional fields."""
        return self.model_dump(exclude_none=True)


# Service Broker registry resources (v1beta1)

class Broker(WireModel):
    """A service broker registered in a project."""
    name: str = Field(..., description="Resource name, projects/{project}/brokers/{broker}")
    title: Optional[str] = None
    url: Optional[str] = None
    createTime: Optional[str] = None


class Instance(WireModel):
    """A service instance as listed by the registry."""
    instance_id: str
    service_id: str = ""
    plan_id: str = ""
    createTime: Optional[str] = None


class Binding(WireModel):
    """A service binding as listed by the registry."""
    binding_id: str


class ListBrokersResponseBody(WireModel):
    brokers: List[Broker] = Field(default_factory=list)


class ListInstancesResponseBody(WireModel):
    instances: List[Instance] = Field(default_factory=list)


class ListBindingsResponseBody(WireModel):
    bindings: List[Binding] = Field(default_factory=list)


# Catalog

class DashboardClient(WireModel):
    """Dashboard client object of a service."""
    id: Optional[str] = None
    secret: Optional[str] = None
    redirect_uri: Optional[str] = None


class ServiceInstanceSchema(WireModel):
    """JSON schemas for service instance creation and update."""
    create: Optional[Dict[str, Any]] = None
    update: Optional[Dict[str, Any]] = None


class ServiceBindingSchema(WireModel):
    """JSON schema for service binding creation."""
    create: Optional[Dict[str, Any]] = None


class Schemas(WireModel):
    """Schemas for the service instances and bindings of a plan."""
    service_instance: Optional[ServiceInstanceSchema] = None
    service_binding: Optional[ServiceBindingSchema] = None


class Plan(WireModel):
    """Service plan definition."""
    id: str = Field(..., description="Unique identifier for the service plan")
    name: str = Field(..., description="Human-readable name for the service plan")
    description: str = ""
    # Absent means free, as the OSB API defines the default to be true.
    free: Optional[bool] = None
    # Absent means the plan inherits the bindable flag of its service.
    bindable: Optional[bool] = None
    schemas: Optional[Schemas] = None
    metadata: Optional[Dict[str, Any]] = None

    def is_free(self) -> bool:
        return True if self.free is None else self.free

    def is_bindable(self, service: 'Service') -> bool:
        return service.bindable if self.bindable is None else self.bindable


class Service(WireModel):
    """Service definition for catalog."""
    name: str = Field(..., description="Human-readable name for the service")
    id: str = Field(..., description="Unique identifier for the service")
    description: str = ""
    tags: List[str] = Field(default_factory=list)
    requires: List[str] = Field(default_factory=list)
    bindable: bool = False
    metadata: Optional[Dict[str, Any]] = None
    dashboard_client: Optional[DashboardClient] = None
    plan_updateable: bool = False
    plans: List[Plan] = Field(default_factory=list)


class CatalogResponseBody(WireModel):
    """Service catalog response."""
    services: List[Service] = Field(default_factory=list)


# Instance lifecycle

class ProvisionRequestBody(WireModel):
    """Service instance provisioning request."""
    service_id: str
    plan_id: str
    context: Optional[Dict[str, Any]] = None
    organization_guid: Optional[str] = None
    space_guid: Optional[str] = None
    parameters: Optional[Dict[str, Any]] = None


class ProvisionResponseBody(WireModel):
    """Service instance provisioning response."""
    dashboard_url: Optional[str] = None
    operation: Optional[str] = None


class DeprovisionResponseBody(WireModel):
    """Service instance deprovisioning response."""
    operation: Optional[str] = None


class UpdateInstancePreviousValues(WireModel):
    """Information about a service instance prior to an update."""
    service_id: Optional[str] = None
    plan_id: Optional[str] = None
    organization_id: Optional[str] = None
    space_id: Optional[str] = None


class UpdateInstanceRequestBody(WireModel):
    """Service instance update request."""
    service_id: str
    plan_id: Optional[str] = None
    context: Optional[Dict[str, Any]] = None
    parameters: Optional[Dict[str, Any]] = None
    previous_values: Optional[UpdateInstancePreviousValues] = None


class UpdateInstanceResponseBody(WireModel):
    """Service instance update response."""
    operation: Optional[str] = None


# Binding lifecycle

class BindRequestBody(WireModel):
    """Service binding request."""
    service_id: str
    plan_id: str
    context: Optional[Dict[str, Any]] = None
    app_guid: Optional[str] = None
    bind_resource: Optional[Dict[str, Any]] = None
    parameters: Optional[Dict[str, Any]] = None


class BindResponseBody(WireModel):
    """Service binding response."""
    credentials: Optional[Dict[str, Any]] = None
    syslog_drain_url: Optional[str] = None
    route_service_url: Optional[str] = None
    volume_mounts: Optional[List[Any]] = None
    operation: Optional[str] = None


class UnbindResponseBody(WireModel):
    """Service unbinding response."""
    operation: Optional[str] = None


class OperationResponseBody(WireModel):
    """Last operation status response."""
    state: str = Field(..., description="State of the operation")
    description: Optional[str] = None

    @field_validator('state')
    @classmethod
    def validate_state(cls, v):
        """Validate operation state."""
        if v not in OPERATION_STATES:
            raise ValueError(f"state must be one of {OPERATION_STATES}")
        return v


# Error bodies

class OSBErrorResponseBody(WireModel):
    """Error body defined by the Open Service Broker API."""
    error: Optional[str] = None
    description: Optional[str] = None
    instance_usable: Optional[bool] = None
    update_repeatable: Optional[bool] = None


class ErrorDetail(WireModel):
    detail: Optional[str] = None


class GCPBrokerError(WireModel):
    """Google API error object."""
    code: Optional[int] = None
    message: Optional[str] = None
    status: Optional[str] = None
    details: List[ErrorDetail] = Field(default_factory=list)


class GCPFailureResponseBody(WireModel):
    """Error envelope returned by the Service Broker API, {"error": {...}}."""
    error: GCPBrokerError
