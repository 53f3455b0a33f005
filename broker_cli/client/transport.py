"""HTTP transports used by the broker adapter."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Any, Optional

import requests
import google.auth
import google.auth.exceptions
from google.auth.transport.requests import AuthorizedSession
from google.oauth2 import service_account

from broker_cli.exceptions import TransportError, ConfigurationError

logger = logging.getLogger(__name__)

CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"


@dataclass
class TransportResponse:
    """Status code and raw body of an HTTP response."""
    status_code: int
    body: bytes = b""

    @property
    def text(self) -> str:
        return self.body.decode('utf-8', errors='replace')


class Transport(ABC):
    """Executes one HTTP request and returns its status and body."""

    @abstractmethod
    def execute(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, str]] = None,
        json_body: Optional[Dict[str, Any]] = None
    ) -> TransportResponse:
        """Send the request.

        Raises:
            TransportError: if the request could not be built or sent
        """
        pass


class RequestsTransport(Transport):
    """Transport backed by a requests session."""

    def __init__(self, session: Optional[requests.Session] = None, timeout: float = 60.0):
        """Initialize the transport.

        Args:
            session: Session used to send requests, credentialed or not
            timeout: Per-request timeout in seconds
        """
        self.session = session or requests.Session()
        self.timeout = timeout

    def execute(self, method, url, headers=None, params=None, json_body=None):
        logger.debug(f"{method} {url} params={params}")

        try:
            response = self.session.request(
                method,
                url,
                headers=headers,
                params=params,
                json=json_body,
                timeout=self.timeout
            )
        except (requests.RequestException, google.auth.exceptions.GoogleAuthError) as e:
            # AuthorizedSession refreshes the token inside request()
            raise TransportError(
                f"error executing request: {e}", method=method, url=url, cause=e
            ) from e

        logger.debug(f"{method} {url} -> {response.status_code}")
        return TransportResponse(status_code=response.status_code, body=response.content)


def transport_from_service_account_file(creds_file: str, timeout: float = 60.0) -> RequestsTransport:
    """Build a transport authenticated with a service account JSON key."""
    try:
        credentials = service_account.Credentials.from_service_account_file(
            creds_file, scopes=[CLOUD_PLATFORM_SCOPE]
        )
    except (OSError, ValueError) as e:
        raise ConfigurationError(
            f"Error creating http client from service account file {creds_file}",
            config_key='creds',
            cause=e
        ) from e

    return RequestsTransport(AuthorizedSession(credentials), timeout=timeout)


def transport_with_default_credentials(timeout: float = 60.0) -> RequestsTransport:
    """Build a transport using Application Default Credentials (e.g. gcloud login)."""
    try:
        credentials, _ = google.auth.default(scopes=[CLOUD_PLATFORM_SCOPE])
    except google.auth.exceptions.DefaultCredentialsError as e:
        raise ConfigurationError(
            "Error creating http client using default credentials", cause=e
        ) from e

    return RequestsTransport(AuthorizedSession(credentials), timeout=timeout)
