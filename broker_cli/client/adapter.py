"""Adapter translating broker operations into Open Service Broker HTTP calls.

The adapter is stateless: every method builds one request, hands it to the
transport and turns the response into a typed result or raises a
``BrokerCliError``. It never retries and never logs, leaving presentation
to its caller.
"""

import json
from abc import ABC, abstractmethod
from typing import Dict, Optional, Type, TypeVar

from pydantic import BaseModel

from broker_cli.client.transport import Transport, TransportResponse
from broker_cli.client.types import (
    Operation, OperationType,
    CreateBrokerParams, DeleteBrokerParams, ListBrokersParams, ListBrokersResult,
    ListInstancesParams, ListInstancesResult, ListBindingsParams, ListBindingsResult,
    GetCatalogParams, GetCatalogResult,
    CreateInstanceParams, CreateInstanceResult,
    DeleteInstanceParams, DeleteInstanceResult,
    UpdateInstanceParams, UpdateInstanceResult,
    CreateBindingParams, CreateBindingResult,
    DeleteBindingParams, DeleteBindingResult,
    LastOperationParams, InstanceLastOperationParams, BindingLastOperationParams
)
from broker_cli.exceptions import BrokerError, AsyncNotAcceptedError, DecodeError
from broker_cli.models.osb import (
    Broker, ListBrokersResponseBody, ListInstancesResponseBody, ListBindingsResponseBody,
    CatalogResponseBody, ProvisionRequestBody, ProvisionResponseBody, DeprovisionResponseBody,
    UpdateInstanceRequestBody, UpdateInstancePreviousValues, UpdateInstanceResponseBody,
    BindRequestBody, BindResponseBody, UnbindResponseBody, OperationResponseBody,
    GCPFailureResponseBody, OSBErrorResponseBody, OPERATION_SUCCEEDED
)

ACCEPTS_INCOMPLETE_KEY = "accepts_incomplete"
SERVICE_ID_KEY = "service_id"
PLAN_ID_KEY = "plan_id"
OPERATION_KEY = "operation"
API_VERSION_HEADER = "X-Broker-API-Version"

INSTANCE_RESOURCE = "instance"
BINDING_RESOURCE = "binding"

MALFORMED_REQUEST = "request was malformed or missing mandatory data"
INSTANCE_CONFLICT = "instance with the same id but different attributes already exists"
BINDING_CONFLICT = "binding with the same id but different attributes already exists"
ASYNC_REQUIRED = "the broker only supports asynchronous requests"
REQUEST_FAILED = "request was not successful"
CATALOG_FAILED = "error fetching catalog"
UNDECODABLE_FAILURE = "error unmarshalling failure response body"

ModelT = TypeVar('ModelT', bound=BaseModel)


class Adapter(ABC):
    """Interface to the Service Broker registry and to OSB brokers."""

    # Registry methods.

    @abstractmethod
    def create_broker(self, params: CreateBrokerParams) -> Broker:
        pass

    @abstractmethod
    def delete_broker(self, params: DeleteBrokerParams) -> None:
        pass

    @abstractmethod
    def list_brokers(self, params: ListBrokersParams) -> ListBrokersResult:
        pass

    @abstractmethod
    def list_instances(self, params: ListInstancesParams) -> ListInstancesResult:
        pass

    @abstractmethod
    def list_bindings(self, params: ListBindingsParams) -> ListBindingsResult:
        pass

    # OSB methods.

    @abstractmethod
    def get_catalog(self, params: GetCatalogParams) -> GetCatalogResult:
        pass

    @abstractmethod
    def create_instance(self, params: CreateInstanceParams) -> CreateInstanceResult:
        pass

    @abstractmethod
    def delete_instance(self, params: DeleteInstanceParams) -> DeleteInstanceResult:
        pass

    @abstractmethod
    def update_instance(self, params: UpdateInstanceParams) -> UpdateInstanceResult:
        pass

    @abstractmethod
    def instance_last_operation(self, params: InstanceLastOperationParams) -> Operation:
        pass

    @abstractmethod
    def create_binding(self, params: CreateBindingParams) -> CreateBindingResult:
        pass

    @abstractmethod
    def delete_binding(self, params: DeleteBindingParams) -> DeleteBindingResult:
        pass

    @abstractmethod
    def binding_last_operation(self, params: BindingLastOperationParams) -> Operation:
        pass


def parse_error_envelope(body: bytes):
    """Parse a failure body into a known error envelope.

    Returns a ``(decoded, envelope)`` pair: ``decoded`` is False when the body
    is not JSON at all, ``envelope`` is a ``GCPFailureResponseBody``, an
    ``OSBErrorResponseBody`` or None.
    """
    try:
        payload = json.loads(body)
    except ValueError:
        return False, None

    for model in (GCPFailureResponseBody, OSBErrorResponseBody):
        try:
            return True, model.model_validate(payload)
        except ValueError:
            continue

    return True, None


def broker_error_from_response(response: TransportResponse, description: str) -> BrokerError:
    """Wrap an error response, keeping the raw body whatever its shape."""
    decoded, envelope = parse_error_envelope(response.body)
    if not decoded:
        description = UNDECODABLE_FAILURE

    return BrokerError(
        status_code=response.status_code,
        description=description,
        body=response.text,
        envelope=envelope
    )


def decode_body(model: Type[ModelT], response: TransportResponse) -> ModelT:
    """Decode a success body into ``model``."""
    try:
        return model.model_validate(json.loads(response.body))
    except ValueError as e:
        raise DecodeError(response.text, cause=e) from e


def _bool_param(value: bool) -> str:
    return "true" if value else "false"


class HttpAdapter(Adapter):
    """Adapter implementation speaking HTTP through a ``Transport``."""

    def __init__(self, transport: Transport):
        self.transport = transport

    # Registry methods.

    def create_broker(self, params: CreateBrokerParams) -> Broker:
        """Create a broker named ``params.name`` in ``params.project``."""
        url = f"{params.host}/v1beta1/projects/{params.project}/brokers"
        broker = Broker(
            name=f"projects/{params.project}/brokers/{params.name}",
            title=params.title or None
        )
        response = self._do_request("POST", url, broker.to_wire())
        return decode_body(Broker, response)

    def delete_broker(self, params: DeleteBrokerParams) -> None:
        self._do_request("DELETE", params.broker_url)

    def list_brokers(self, params: ListBrokersParams) -> ListBrokersResult:
        url = f"{params.host}/v1beta1/projects/{params.project}/brokers"
        body = decode_body(ListBrokersResponseBody, self._do_request("GET", url))
        return ListBrokersResult(brokers=body.brokers)

    def list_instances(self, params: ListInstancesParams) -> ListInstancesResult:
        url = f"{params.server}/instances"
        body = decode_body(ListInstancesResponseBody, self._do_request("GET", url))
        return ListInstancesResult(instances=body.instances)

    def list_bindings(self, params: ListBindingsParams) -> ListBindingsResult:
        url = f"{params.server}/instances/{params.instance_id}/bindings"
        body = decode_body(ListBindingsResponseBody, self._do_request("GET", url))
        return ListBindingsResult(bindings=body.bindings)

    # OSB methods.

    def get_catalog(self, params: GetCatalogParams) -> GetCatalogResult:
        url = f"{params.server}/v2/catalog"
        response = self._do_osb_request("GET", url, params.api_version)

        if response.status_code != 200:
            raise broker_error_from_response(response, CATALOG_FAILED)

        body = decode_body(CatalogResponseBody, response)
        return GetCatalogResult(services=body.services)

    def create_instance(self, params: CreateInstanceParams) -> CreateInstanceResult:
        """Provision a service instance."""
        url = f"{params.server}/v2/service_instances/{params.instance_id}"
        request_body = ProvisionRequestBody(
            service_id=params.service_id,
            plan_id=params.plan_id,
            context=params.context,
            organization_guid=params.organization_guid or None,
            space_guid=params.space_guid or None,
            parameters=params.parameters
        )
        query = {ACCEPTS_INCOMPLETE_KEY: _bool_param(params.accepts_incomplete)}

        response = self._do_osb_request("PUT", url, params.api_version, request_body.to_wire(), query)
        code = response.status_code

        if code in (200, 201):
            # Identical instance already exists, or it was provisioned synchronously.
            body = decode_body(ProvisionResponseBody, response)
            return CreateInstanceResult(async_=False, dashboard_url=body.dashboard_url,
                                        operation_id=body.operation)
        if code == 202:
            self._check_accepts_incomplete(params.accepts_incomplete, response)
            body = decode_body(ProvisionResponseBody, response)
            return CreateInstanceResult(async_=True, dashboard_url=body.dashboard_url,
                                        operation_id=body.operation)

        raise self._failure(response, conflict=INSTANCE_CONFLICT)

    def delete_instance(self, params: DeleteInstanceParams) -> DeleteInstanceResult:
        """Deprovision a service instance. A 410 means it is already gone."""
        url = f"{params.server}/v2/service_instances/{params.instance_id}"
        query = {
            SERVICE_ID_KEY: params.service_id,
            PLAN_ID_KEY: params.plan_id,
            ACCEPTS_INCOMPLETE_KEY: _bool_param(params.accepts_incomplete),
        }

        response = self._do_osb_request("DELETE", url, params.api_version, params=query)
        code = response.status_code

        if code in (200, 410):
            return DeleteInstanceResult(async_=False)
        if code == 202:
            self._check_accepts_incomplete(params.accepts_incomplete, response)
            body = decode_body(DeprovisionResponseBody, response)
            return DeleteInstanceResult(async_=True, operation_id=body.operation)

        raise self._failure(response)

    def update_instance(self, params: UpdateInstanceParams) -> UpdateInstanceResult:
        url = f"{params.server}/v2/service_instances/{params.instance_id}"

        previous_values = UpdateInstancePreviousValues(
            service_id=params.previous_service_id or None,
            plan_id=params.previous_plan_id or None,
            organization_id=params.previous_organization_id or None,
            space_id=params.previous_space_id or None
        )
        request_body = UpdateInstanceRequestBody(
            service_id=params.service_id,
            plan_id=params.plan_id or None,
            context=params.context,
            parameters=params.parameters,
            previous_values=previous_values if previous_values.to_wire() else None
        )
        query = {ACCEPTS_INCOMPLETE_KEY: _bool_param(params.accepts_incomplete)}

        response = self._do_osb_request("PATCH", url, params.api_version, request_body.to_wire(), query)
        code = response.status_code

        if code == 200:
            body = decode_body(UpdateInstanceResponseBody, response)
            return UpdateInstanceResult(async_=False, operation_id=body.operation)
        if code == 202:
            self._check_accepts_incomplete(params.accepts_incomplete, response)
            body = decode_body(UpdateInstanceResponseBody, response)
            return UpdateInstanceResult(async_=True, operation_id=body.operation)

        raise self._failure(response)

    def instance_last_operation(self, params: InstanceLastOperationParams) -> Operation:
        url = f"{params.server}/v2/service_instances/{params.instance_id}/last_operation"
        return self._last_operation(INSTANCE_RESOURCE, url, params.last_operation)

    def create_binding(self, params: CreateBindingParams) -> CreateBindingResult:
        """Bind to a service instance."""
        url = (f"{params.server}/v2/service_instances/{params.instance_id}"
               f"/service_bindings/{params.binding_id}")
        request_body = BindRequestBody(
            service_id=params.service_id,
            plan_id=params.plan_id,
            context=params.context,
            app_guid=params.app_guid or None,
            bind_resource=params.bind_resource,
            parameters=params.parameters
        )
        query = {ACCEPTS_INCOMPLETE_KEY: _bool_param(params.accepts_incomplete)}

        response = self._do_osb_request("PUT", url, params.api_version, request_body.to_wire(), query)
        code = response.status_code

        if code in (200, 201, 202):
            is_async = code == 202
            if is_async:
                self._check_accepts_incomplete(params.accepts_incomplete, response)
            body = decode_body(BindResponseBody, response)
            return CreateBindingResult(
                async_=is_async,
                credentials=body.credentials,
                syslog_drain_url=body.syslog_drain_url,
                route_service_url=body.route_service_url,
                volume_mounts=body.volume_mounts,
                operation_id=body.operation
            )

        raise self._failure(response, conflict=BINDING_CONFLICT)

    def delete_binding(self, params: DeleteBindingParams) -> DeleteBindingResult:
        """Unbind from a service instance. A 410 means the binding is already gone."""
        url = (f"{params.server}/v2/service_instances/{params.instance_id}"
               f"/service_bindings/{params.binding_id}")
        query = {
            SERVICE_ID_KEY: params.service_id,
            PLAN_ID_KEY: params.plan_id,
            ACCEPTS_INCOMPLETE_KEY: _bool_param(params.accepts_incomplete),
        }

        response = self._do_osb_request("DELETE", url, params.api_version, params=query)
        code = response.status_code

        if code in (200, 410):
            return DeleteBindingResult(async_=False)
        if code == 202:
            self._check_accepts_incomplete(params.accepts_incomplete, response)
            body = decode_body(UnbindResponseBody, response)
            return DeleteBindingResult(async_=True, operation_id=body.operation)

        raise self._failure(response)

    def binding_last_operation(self, params: BindingLastOperationParams) -> Operation:
        url = (f"{params.server}/v2/service_instances/{params.instance_id}"
               f"/service_bindings/{params.binding_id}/last_operation")
        return self._last_operation(BINDING_RESOURCE, url, params.last_operation)

    # Helpers.

    def _last_operation(self, resource: str, url: str, params: LastOperationParams) -> Operation:
        query = {}
        if params.service_id:
            query[SERVICE_ID_KEY] = params.service_id
        if params.plan_id:
            query[PLAN_ID_KEY] = params.plan_id
        if params.operation_id:
            query[OPERATION_KEY] = params.operation_id

        response = self._do_osb_request("GET", url, params.api_version, params=query)
        code = response.status_code

        if code == 200:
            body = decode_body(OperationResponseBody, response)
            return Operation(state=body.state, description=body.description or "")
        if code == 400:
            raise broker_error_from_response(response, MALFORMED_REQUEST)
        if code == 410:
            # Gone is the expected end of a delete.
            if params.operation_type == OperationType.DELETE:
                return Operation(state=OPERATION_SUCCEEDED,
                                 description=f"The {resource} doesn't exist.")
            raise broker_error_from_response(response, f"{resource} doesn't exist")

        raise broker_error_from_response(response, REQUEST_FAILED)

    @staticmethod
    def _check_accepts_incomplete(accepts_incomplete: bool, response: TransportResponse):
        if not accepts_incomplete:
            raise AsyncNotAcceptedError(response.text)

    @staticmethod
    def _failure(response: TransportResponse, conflict: Optional[str] = None) -> BrokerError:
        code = response.status_code
        if code == 400:
            return broker_error_from_response(response, MALFORMED_REQUEST)
        if code == 409 and conflict:
            return broker_error_from_response(response, conflict)
        if code == 422:
            return broker_error_from_response(response, ASYNC_REQUIRED)
        return broker_error_from_response(response, REQUEST_FAILED)

    def _do_request(self, method: str, url: str, json_body: Optional[Dict] = None) -> TransportResponse:
        """Send a registry request; any non-2xx status is an error."""
        response = self.transport.execute(method, url, json_body=json_body)
        if not 200 <= response.status_code < 300:
            raise broker_error_from_response(response, REQUEST_FAILED)
        return response

    def _do_osb_request(
        self,
        method: str,
        url: str,
        api_version: str,
        json_body: Optional[Dict] = None,
        params: Optional[Dict[str, str]] = None
    ) -> TransportResponse:
        """Send an OSB request and hand back the response whatever its status."""
        headers = {API_VERSION_HEADER: api_version}
        return self.transport.execute(method, url, headers=headers, params=params or None,
                                      json_body=json_body)
