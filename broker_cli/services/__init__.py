"""Services built on top of the broker adapter."""

from .cleanup import BrokerCleanupService, InstanceSummary, CleanupReport

__all__ = [
    'BrokerCleanupService',
    'InstanceSummary',
    'CleanupReport'
]
