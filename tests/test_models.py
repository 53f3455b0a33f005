"""Tests for Open Service Broker data models."""

import pytest
from pydantic import ValidationError

from broker_cli.models.osb import (
    Plan, Service, CatalogResponseBody, ProvisionRequestBody, OperationResponseBody,
    UpdateInstanceRequestBody, UpdateInstancePreviousValues, Instance,
    OPERATION_IN_PROGRESS
)


class TestCatalogModels:
    """Test catalog models."""

    def test_catalog_decoding(self):
        """Test decoding a catalog with nested schemas."""
        catalog = CatalogResponseBody.model_validate({"services": [{
            "name": "db",
            "id": "svc-1",
            "description": "A database",
            "tags": ["sql"],
            "bindable": True,
            "plan_updateable": True,
            "dashboard_client": {"id": "client", "secret": "s", "redirect_uri": "https://r"},
            "plans": [{
                "id": "plan-1",
                "name": "small",
                "free": False,
                "schemas": {"service_instance": {"create": {"parameters": {"type": "object"}}}}
            }]
        }]})

        service = catalog.services[0]
        assert service.tags == ["sql"]
        assert service.dashboard_client.redirect_uri == "https://r"
        assert service.plans[0].schemas.service_instance.create == {"parameters": {"type": "object"}}

    def test_plan_defaults(self):
        """Test a plan is free and inherits bindable when the fields are absent."""
        service = Service(name="db", id="svc-1", bindable=True)
        plan = Plan(id="plan-1", name="small")

        assert plan.is_free()
        assert plan.is_bindable(service)

    def test_plan_overrides(self):
        """Test explicit plan flags win over the service."""
        service = Service(name="db", id="svc-1", bindable=True)
        plan = Plan(id="plan-1", name="small", free=False, bindable=False)

        assert not plan.is_free()
        assert not plan.is_bindable(service)

    def test_service_requires_id(self):
        """Test required catalog fields."""
        with pytest.raises(ValidationError):
            Service.model_validate({"name": "db"})


class TestRequestBodies:
    """Test request body serialization."""

    def test_unset_fields_left_out(self):
        """Test optional fields are not sent when unset."""
        body = ProvisionRequestBody(service_id="svc-1", plan_id="plan-1")

        assert body.to_wire() == {"service_id": "svc-1", "plan_id": "plan-1"}

    def test_update_with_previous_values(self):
        """Test nested previous values are serialized without unset fields."""
        body = UpdateInstanceRequestBody(
            service_id="svc-1",
            previous_values=UpdateInstancePreviousValues(plan_id="plan-1")
        )

        assert body.to_wire() == {"service_id": "svc-1", "previous_values": {"plan_id": "plan-1"}}


class TestResponseBodies:
    """Test response body decoding."""

    def test_operation_state(self):
        """Test a known operation state."""
        body = OperationResponseBody.model_validate({"state": OPERATION_IN_PROGRESS})

        assert body.state == OPERATION_IN_PROGRESS
        assert body.description is None

    def test_operation_unknown_state(self):
        """Test an unknown state is rejected."""
        with pytest.raises(ValidationError):
            OperationResponseBody.model_validate({"state": "done"})

    def test_registry_instance_keeps_create_time(self):
        """Test the camelCase registry field."""
        instance = Instance.model_validate({"instance_id": "i", "createTime": "2018-01-01T00:00:00Z"})

        assert instance.createTime == "2018-01-01T00:00:00Z"
        assert instance.service_id == ""
