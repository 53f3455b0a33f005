"""
Broker CLI - Open Service Broker client toolkit

A client for the Open Service Broker API and the Service Broker registry:
register brokers, provision and bind service instances, and poll
asynchronous broker operations to completion.
"""

__version__ = "0.1.0"
__author__ = "broker-cli"
