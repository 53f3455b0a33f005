"""Open Service Broker payload models."""

from .osb import (
    Broker, Instance, Binding, Service, Plan, Schemas, DashboardClient,
    OPERATION_IN_PROGRESS, OPERATION_SUCCEEDED, OPERATION_FAILED
)

__all__ = [
    'Broker',
    'Instance',
    'Binding',
    'Service',
    'Plan',
    'Schemas',
    'DashboardClient',
    'OPERATION_IN_PROGRESS',
    'OPERATION_SUCCEEDED',
    'OPERATION_FAILED'
]
