"""Clients for the Service Broker registry and Open Service Broker endpoints."""

from .adapter import Adapter, HttpAdapter
from .transport import Transport, TransportResponse, RequestsTransport
from .types import Operation, OperationType

__all__ = [
    'Adapter',
    'HttpAdapter',
    'Transport',
    'TransportResponse',
    'RequestsTransport',
    'Operation',
    'OperationType'
]
