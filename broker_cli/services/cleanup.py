"""Broker cleanup: delete every binding and instance registered in a broker."""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from broker_cli.client.adapter import Adapter
from broker_cli.client.types import (
    Operation, OperationType, ListInstancesParams, ListBindingsParams,
    DeleteBindingParams, DeleteInstanceParams,
    LastOperationParams, InstanceLastOperationParams, BindingLastOperationParams
)
from broker_cli.config import DEFAULT_API_VERSION, PollingConfig
from broker_cli.exceptions import BrokerCliError, CleanupError, CleanupCancelledError
from broker_cli.utils.polling import BackoffConfig, wait_on_operation

logger = logging.getLogger(__name__)


@dataclass
class InstanceSummary:
    """A service instance of a broker together with the IDs of its bindings."""
    instance_id: str
    service_id: str
    plan_id: str
    create_time: Optional[str] = None
    binding_ids: List[str] = field(default_factory=list)

    @property
    def num_bindings(self) -> int:
        return len(self.binding_ids)


@dataclass
class CleanupReport:
    """Outcome of a cleanup run."""
    broker_url: str
    deleted_instances: List[str] = field(default_factory=list)
    deleted_bindings: Dict[str, List[str]] = field(default_factory=dict)
    errors: Dict[str, Exception] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return not self.errors


class BrokerCleanupService:
    """Deletes the contents of a broker, bindings before their instance."""

    def __init__(
        self,
        adapter: Adapter,
        api_version: str = DEFAULT_API_VERSION,
        progress: Optional[Callable[[], None]] = None,
        polling: Optional[PollingConfig] = None
    ):
        """Initialize cleanup service.

        Args:
            adapter: Adapter used for every broker call
            api_version: OSB API version sent with delete and poll requests
            progress: Called before every poll, e.g. to print a progress marker
            polling: Backoff and timeout of the last operation polling
        """
        self.adapter = adapter
        self.api_version = api_version
        self.progress = progress
        self.polling = polling or PollingConfig()

    def list_instances(self, broker_url: str) -> List[InstanceSummary]:
        """List the instances of a broker along with their binding IDs."""
        result = self.adapter.list_instances(ListInstancesParams(server=broker_url))

        summaries = []
        for instance in result.instances:
            bindings = self.adapter.list_bindings(
                ListBindingsParams(server=broker_url, instance_id=instance.instance_id)
            )
            summaries.append(InstanceSummary(
                instance_id=instance.instance_id,
                service_id=instance.service_id,
                plan_id=instance.plan_id,
                create_time=instance.createTime,
                binding_ids=[b.binding_id for b in bindings.bindings]
            ))

        return summaries

    def delete_binding(self, broker_url: str, instance: InstanceSummary, binding_id: str) -> Operation:
        """Delete one binding and wait until the broker reports it gone."""
        logger.info(
            f"Deleting binding {binding_id} to instance {instance.instance_id} in broker {broker_url}",
            extra={'broker_url': broker_url, 'instance_id': instance.instance_id,
                   'binding_id': binding_id}
        )

        result = self.adapter.delete_binding(DeleteBindingParams(
            server=broker_url,
            instance_id=instance.instance_id,
            binding_id=binding_id,
            service_id=instance.service_id,
            plan_id=instance.plan_id,
            api_version=self.api_version,
            accepts_incomplete=True
        ))

        def poll() -> Operation:
            return self.adapter.binding_last_operation(BindingLastOperationParams(
                server=broker_url,
                instance_id=instance.instance_id,
                binding_id=binding_id,
                last_operation=self._last_operation_params(instance, result.operation_id)
            ))

        op = self._wait(poll)
        if not op.succeeded:
            raise BrokerCliError(
                f"Failed to delete binding {binding_id!r} to instance {instance.instance_id!r} "
                f"in broker {broker_url!r}: {op}",
                details={'state': op.state}
            )
        logger.info(
            f"Deleted binding {binding_id} to instance {instance.instance_id}",
            extra={'broker_url': broker_url, 'instance_id': instance.instance_id,
                   'binding_id': binding_id, 'operation': result.operation_id}
        )
        return op

    def delete_instance(self, broker_url: str, instance: InstanceSummary) -> Operation:
        """Delete one instance and wait until the broker reports it gone."""
        logger.info(
            f"Deleting instance {instance.instance_id} in broker {broker_url}",
            extra={'broker_url': broker_url, 'instance_id': instance.instance_id}
        )

        result = self.adapter.delete_instance(DeleteInstanceParams(
            server=broker_url,
            instance_id=instance.instance_id,
            service_id=instance.service_id,
            plan_id=instance.plan_id,
            api_version=self.api_version,
            accepts_incomplete=True
        ))

        def poll() -> Operation:
            return self.adapter.instance_last_operation(InstanceLastOperationParams(
                server=broker_url,
                instance_id=instance.instance_id,
                last_operation=self._last_operation_params(instance, result.operation_id)
            ))

        op = self._wait(poll)
        if not op.succeeded:
            raise BrokerCliError(
                f"Failed to delete instance {instance.instance_id!r} in broker {broker_url!r}: {op}",
                details={'state': op.state}
            )
        logger.info(
            f"Deleted instance {instance.instance_id}",
            extra={'broker_url': broker_url, 'instance_id': instance.instance_id,
                   'operation': result.operation_id}
        )
        return op

    def cleanup(
        self,
        broker_url: str,
        confirm: Optional[Callable[[List[InstanceSummary]], bool]] = None
    ) -> CleanupReport:
        """Delete all bindings and instances of a broker.

        Bindings of an instance are deleted first; the instance itself is
        only deleted once all of them are gone. A failure stops work on that
        instance and moves on to the next one.

        Args:
            broker_url: Broker to clean up
            confirm: Shown the instances about to be deleted; returning False
                cancels the cleanup

        Returns:
            Report of what was deleted

        Raises:
            CleanupCancelledError: if ``confirm`` declined
            CleanupError: if any instance could not be cleaned up
        """
        report = CleanupReport(broker_url=broker_url)

        instances = self.list_instances(broker_url)
        if not instances:
            logger.info(f"There are no service instances associated with broker {broker_url}")
            return report

        if confirm is not None and not confirm(instances):
            raise CleanupCancelledError(broker_url)

        for instance in instances:
            try:
                for binding_id in instance.binding_ids:
                    self.delete_binding(broker_url, instance, binding_id)
                    report.deleted_bindings.setdefault(instance.instance_id, []).append(binding_id)

                self.delete_instance(broker_url, instance)
                report.deleted_instances.append(instance.instance_id)
            except BrokerCliError as e:
                logger.error(f"Failed to cleanup instance {instance.instance_id}: {e}",
                             extra={'broker_url': broker_url, 'instance_id': instance.instance_id})
                report.errors[instance.instance_id] = e

        if report.errors:
            raise CleanupError(broker_url, report.errors)

        logger.info(f"Cleaned up {len(report.deleted_instances)} instances in broker {broker_url}")
        return report

    def _last_operation_params(self, instance: InstanceSummary, operation_id: Optional[str]):
        return LastOperationParams(
            api_version=self.api_version,
            service_id=instance.service_id,
            plan_id=instance.plan_id,
            operation_id=operation_id,
            operation_type=OperationType.DELETE
        )

    def _wait(self, poll: Callable[[], Operation]) -> Operation:
        return wait_on_operation(
            poll,
            progress=self.progress,
            timeout=self.polling.timeout,
            config=BackoffConfig(base_delay=self.polling.base_delay, max_delay=self.polling.max_delay)
        )
