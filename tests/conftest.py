"""Pytest configuration and fixtures."""

import json
import pytest
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from broker_cli.client.adapter import HttpAdapter
from broker_cli.client.transport import Transport, TransportResponse

BROKER_URL = "https://servicebroker.googleapis.com/v1beta1/projects/my-project/brokers/my-broker"


@dataclass
class RecordedRequest:
    method: str
    url: str
    headers: Optional[Dict[str, str]] = None
    params: Optional[Dict[str, str]] = None
    json_body: Optional[Dict[str, Any]] = None


@dataclass
class FakeTransport(Transport):
    """Transport replaying queued responses and recording every request."""
    responses: List[TransportResponse] = field(default_factory=list)
    requests: List[RecordedRequest] = field(default_factory=list)

    def queue(self, status_code: int, body: Any = None):
        if body is None:
            raw = b""
        elif isinstance(body, (bytes, str)):
            raw = body.encode() if isinstance(body, str) else body
        else:
            raw = json.dumps(body).encode()
        self.responses.append(TransportResponse(status_code=status_code, body=raw))
        return self

    def execute(self, method, url, headers=None, params=None, json_body=None):
        self.requests.append(RecordedRequest(method, url, headers, params, json_body))
        if not self.responses:
            raise AssertionError(f"unexpected request {method} {url}")
        return self.responses.pop(0)

    @property
    def last_request(self) -> RecordedRequest:
        return self.requests[-1]


@pytest.fixture
def transport():
    """Fake transport with no queued responses."""
    return FakeTransport()


@pytest.fixture
def adapter(transport):
    """HTTP adapter on top of the fake transport."""
    return HttpAdapter(transport)


@pytest.fixture
def broker_url():
    return BROKER_URL
