"""Broker URL construction and validation.

Broker commands address a broker either with ``--server`` (a full broker
URL) or with ``--project`` and ``--broker``, in which case the URL of a
Service Broker registry broker is generated. Exactly one of the two forms
must be used.
"""

import re
from dataclasses import dataclass, field
from typing import Optional

from broker_cli.config import DEFAULT_BROKER_HOST
from broker_cli.exceptions import BrokerURLError

SERVER_LONG_NAME = "server"
PROJECT_LONG_NAME = "project"
BROKER_LONG_NAME = "broker"

_BROKER_URL_PATTERN = re.compile(
    r'^(?P<host>https?://[^/]+)/v1beta1/projects/(?P<project>[^/]+)/brokers/(?P<broker>[^/]+)/?$'
)


@dataclass
class BrokerLocation:
    """Components of a registry broker URL."""
    host: str
    project: str
    broker: str

    @property
    def url(self) -> str:
        return construct_broker_url(self.host, self.project, self.broker)


def construct_broker_url(host: str, project: str, broker: str) -> str:
    return f"{host}/v1beta1/projects/{project}/brokers/{broker}"


def parse_broker_url(url: str) -> BrokerLocation:
    """Split a broker URL of the form {host}/v1beta1/projects/{project}/brokers/{broker}."""
    match = _BROKER_URL_PATTERN.match(url)
    if not match:
        raise BrokerURLError(
            f"Broker URL {url!r} does not match "
            f"{{host}}/v1beta1/projects/{{project}}/brokers/{{broker}}",
            field=SERVER_LONG_NAME,
            value=url
        )
    return BrokerLocation(**match.groupdict())


@dataclass
class BrokerURLConstructor:
    """Flag values a broker URL can be generated from via broker_url()."""
    server: Optional[str] = None
    project: Optional[str] = None
    broker: Optional[str] = None
    host: str = DEFAULT_BROKER_HOST
    location: Optional[BrokerLocation] = field(default=None, init=False)

    def _describe(self) -> str:
        return (f"{SERVER_LONG_NAME}(= {self.server or ''!r}) or the values of "
                f"{PROJECT_LONG_NAME}(= {self.project or ''!r}) and "
                f"{BROKER_LONG_NAME}(= {self.broker or ''!r})")

    def broker_url(self) -> str:
        """Check the addressing flags and return the broker URL.

        The resolved host, project and broker are kept in ``location``.
        """
        if not self.server and not (self.project and self.broker):
            raise BrokerURLError(f"Either the value of {self._describe()} must be specified")

        if self.server and (self.project or self.broker):
            raise BrokerURLError(
                f"Either the value of {self._describe()} needs to be specified, not both"
            )

        if self.server:
            self.location = parse_broker_url(self.server)
        else:
            self.location = BrokerLocation(self.host, self.project, self.broker)

        return self.location.url
