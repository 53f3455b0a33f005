"""Tests for broker cleanup."""

import logging

import google.auth.exceptions
import pytest
from unittest.mock import Mock

from broker_cli.client.adapter import Adapter, HttpAdapter
from broker_cli.client.transport import RequestsTransport
from broker_cli.client.types import (
    Operation, OperationType, ListInstancesResult, ListBindingsResult,
    DeleteBindingResult, DeleteInstanceResult
)
from broker_cli.config import PollingConfig
from broker_cli.exceptions import BrokerError, CleanupError, CleanupCancelledError, TransportError
from broker_cli.models.osb import Instance, Binding, OPERATION_SUCCEEDED, OPERATION_FAILED
from broker_cli.services.cleanup import BrokerCleanupService

NO_DELAY = PollingConfig(base_delay=0.0, max_delay=0.0)


@pytest.fixture
def adapter(broker_url):
    """Adapter mock holding two instances, the first with two bindings."""
    adapter = Mock(spec=Adapter)
    adapter.list_instances.return_value = ListInstancesResult(instances=[
        Instance(instance_id="inst-1", service_id="svc-1", plan_id="plan-1"),
        Instance(instance_id="inst-2", service_id="svc-2", plan_id="plan-2"),
    ])
    adapter.list_bindings.side_effect = lambda params: ListBindingsResult(
        bindings=[Binding(binding_id="b-1"), Binding(binding_id="b-2")]
        if params.instance_id == "inst-1" else []
    )
    adapter.delete_binding.return_value = DeleteBindingResult(async_=False)
    adapter.delete_instance.return_value = DeleteInstanceResult(async_=False)
    adapter.binding_last_operation.return_value = Operation(state=OPERATION_SUCCEEDED)
    adapter.instance_last_operation.return_value = Operation(state=OPERATION_SUCCEEDED)
    return adapter


@pytest.fixture
def service(adapter):
    return BrokerCleanupService(adapter, polling=NO_DELAY)


class TestListInstances:
    """Test enumeration of broker contents."""

    def test_instances_with_bindings(self, service, broker_url):
        """Test binding IDs are attached to their instance."""
        instances = service.list_instances(broker_url)

        assert [i.instance_id for i in instances] == ["inst-1", "inst-2"]
        assert instances[0].binding_ids == ["b-1", "b-2"]
        assert instances[0].num_bindings == 2
        assert instances[1].binding_ids == []


class TestCleanup:
    """Test the cleanup orchestration."""

    def test_bindings_deleted_before_instance(self, adapter, service, broker_url):
        """Test both bindings go before their instance."""
        calls = []

        def delete_binding(params):
            calls.append(("binding", params.binding_id))
            return DeleteBindingResult(async_=False)

        def delete_instance(params):
            calls.append(("instance", params.instance_id))
            return DeleteInstanceResult(async_=False)

        adapter.delete_binding.side_effect = delete_binding
        adapter.delete_instance.side_effect = delete_instance

        report = service.cleanup(broker_url)

        assert calls == [
            ("binding", "b-1"), ("binding", "b-2"), ("instance", "inst-1"), ("instance", "inst-2")
        ]
        assert report.deleted_instances == ["inst-1", "inst-2"]
        assert report.deleted_bindings == {"inst-1": ["b-1", "b-2"]}
        assert report.success

    def test_deletes_accept_incomplete_and_poll_as_delete(self, adapter, service, broker_url):
        """Test every delete is asynchronous-capable and polled as a delete."""
        adapter.delete_instance.return_value = DeleteInstanceResult(async_=True, operation_id="op-1")

        service.cleanup(broker_url)

        for call in adapter.delete_binding.call_args_list + adapter.delete_instance.call_args_list:
            assert call.args[0].accepts_incomplete is True

        instance_poll = adapter.instance_last_operation.call_args_list[0].args[0]
        assert instance_poll.last_operation.operation_type == OperationType.DELETE
        assert instance_poll.last_operation.operation_id == "op-1"
        assert instance_poll.last_operation.service_id == "svc-1"

        binding_poll = adapter.binding_last_operation.call_args_list[0].args[0]
        assert binding_poll.last_operation.operation_type == OperationType.DELETE
        assert binding_poll.binding_id == "b-1"

    def test_empty_broker(self, adapter, service, broker_url):
        """Test a broker without instances."""
        adapter.list_instances.return_value = ListInstancesResult(instances=[])
        confirm = Mock()

        report = service.cleanup(broker_url, confirm=confirm)

        assert report.deleted_instances == []
        confirm.assert_not_called()
        adapter.delete_instance.assert_not_called()

    def test_cancelled(self, adapter, service, broker_url):
        """Test a declined confirmation deletes nothing."""
        confirm = Mock(return_value=False)

        with pytest.raises(CleanupCancelledError):
            service.cleanup(broker_url, confirm=confirm)

        assert len(confirm.call_args.args[0]) == 2
        adapter.delete_binding.assert_not_called()
        adapter.delete_instance.assert_not_called()

    def test_binding_failure_skips_instance(self, adapter, service, broker_url):
        """Test a failing binding stops work on its instance only."""
        error = BrokerError(status_code=500, description="request was not successful")
        adapter.delete_binding.side_effect = error

        with pytest.raises(CleanupError) as exc_info:
            service.cleanup(broker_url)

        assert exc_info.value.errors == {"inst-1": error}
        # The first binding failed, so the second was never tried.
        assert adapter.delete_binding.call_count == 1
        deleted = [c.args[0].instance_id for c in adapter.delete_instance.call_args_list]
        assert deleted == ["inst-2"]

    def test_failed_operation_is_an_error(self, adapter, service, broker_url):
        """Test a delete ending in the failed state."""
        adapter.instance_last_operation.return_value = Operation(state=OPERATION_FAILED, description="stuck")

        with pytest.raises(CleanupError) as exc_info:
            service.cleanup(broker_url)

        assert set(exc_info.value.errors) == {"inst-1", "inst-2"}
        assert "stuck" in str(exc_info.value.errors["inst-1"])
        assert exc_info.value.details['failed_instances'] == ["inst-1", "inst-2"]

    def test_progress_callback(self, adapter, broker_url):
        """Test progress is reported while polling."""
        progress = Mock()
        service = BrokerCleanupService(adapter, progress=progress, polling=NO_DELAY)

        service.cleanup(broker_url)

        # Two bindings and two instances, each polled once.
        assert progress.call_count == 4

    def test_credential_failure_collected_per_instance(self, adapter, service, broker_url):
        """Test a token refresh failure on one instance does not stop the others."""
        session = Mock()

        def request(method, url, **kwargs):
            if url.endswith("/service_instances/inst-1"):
                raise google.auth.exceptions.RefreshError("token expired")
            return Mock(status_code=200, content=b"{}")

        session.request.side_effect = request
        adapter.delete_instance.side_effect = HttpAdapter(RequestsTransport(session)).delete_instance

        with pytest.raises(CleanupError) as exc_info:
            service.cleanup(broker_url)

        assert set(exc_info.value.errors) == {"inst-1"}
        assert isinstance(exc_info.value.errors["inst-1"], TransportError)
        deleted = [c.args[0].instance_id for c in adapter.delete_instance.call_args_list]
        assert deleted == ["inst-1", "inst-2"]

    def test_operation_id_logged(self, adapter, service, broker_url, caplog):
        """Test the broker operation of an asynchronous delete is logged."""
        adapter.delete_instance.return_value = DeleteInstanceResult(async_=True, operation_id="op-7")

        with caplog.at_level(logging.INFO, logger="broker_cli.services.cleanup"):
            service.cleanup(broker_url)

        deleted = [r for r in caplog.records if r.getMessage() == "Deleted instance inst-2"]
        assert len(deleted) == 1
        assert deleted[0].operation == "op-7"
        assert deleted[0].instance_id == "inst-2"
