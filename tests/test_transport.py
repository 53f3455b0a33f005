"""Tests for HTTP transports."""

import pytest
import requests
import google.auth.exceptions
from unittest.mock import Mock, patch

from broker_cli.client.transport import (
    CLOUD_PLATFORM_SCOPE, RequestsTransport, TransportResponse,
    transport_from_service_account_file, transport_with_default_credentials
)
from broker_cli.exceptions import ConfigurationError, TransportError


class TestRequestsTransport:
    """Test the requests backed transport."""

    def test_execute(self):
        """Test the request is passed through and the body kept raw."""
        session = Mock()
        session.request.return_value = Mock(status_code=202, content=b'{"operation": "op"}')
        transport = RequestsTransport(session, timeout=5.0)

        response = transport.execute(
            "PUT", "https://broker/v2/service_instances/i",
            headers={"X-Broker-API-Version": "2.13"},
            params={"accepts_incomplete": "true"},
            json_body={"service_id": "s"}
        )

        assert response == TransportResponse(status_code=202, body=b'{"operation": "op"}')
        assert response.text == '{"operation": "op"}'
        session.request.assert_called_once_with(
            "PUT", "https://broker/v2/service_instances/i",
            headers={"X-Broker-API-Version": "2.13"},
            params={"accepts_incomplete": "true"},
            json={"service_id": "s"},
            timeout=5.0
        )

    def test_request_failure_wrapped(self):
        """Test network errors become transport errors."""
        session = Mock()
        cause = requests.ConnectionError("connection refused")
        session.request.side_effect = cause
        transport = RequestsTransport(session)

        with pytest.raises(TransportError) as exc_info:
            transport.execute("GET", "https://broker/v2/catalog")

        assert exc_info.value.cause is cause
        assert exc_info.value.details == {'method': 'GET', 'url': 'https://broker/v2/catalog'}

    @pytest.mark.parametrize('cause', [
        google.auth.exceptions.RefreshError("token expired"),
        google.auth.exceptions.TransportError("metadata server unreachable"),
    ])
    def test_credential_refresh_failure_wrapped(self, cause):
        """Test token refresh errors become transport errors."""
        session = Mock()
        session.request.side_effect = cause
        transport = RequestsTransport(session)

        with pytest.raises(TransportError) as exc_info:
            transport.execute("DELETE", "https://broker/v2/service_instances/i")

        assert exc_info.value.cause is cause

    def test_default_session(self):
        transport = RequestsTransport()

        assert isinstance(transport.session, requests.Session)
        assert transport.timeout == 60.0


class TestCredentials:
    """Test credentialed transport construction."""

    @patch('broker_cli.client.transport.AuthorizedSession')
    @patch('google.oauth2.service_account.Credentials.from_service_account_file')
    def test_service_account_file(self, mock_from_file, mock_session):
        """Test a service account key file."""
        transport = transport_from_service_account_file("/keys/sa.json", timeout=10.0)

        mock_from_file.assert_called_once_with("/keys/sa.json", scopes=[CLOUD_PLATFORM_SCOPE])
        mock_session.assert_called_once_with(mock_from_file.return_value)
        assert transport.session is mock_session.return_value
        assert transport.timeout == 10.0

    @patch('google.oauth2.service_account.Credentials.from_service_account_file')
    def test_missing_service_account_file(self, mock_from_file):
        """Test an unreadable key file."""
        mock_from_file.side_effect = FileNotFoundError("/keys/missing.json")

        with pytest.raises(ConfigurationError) as exc_info:
            transport_from_service_account_file("/keys/missing.json")

        assert exc_info.value.details == {'config_key': 'creds'}

    @patch('broker_cli.client.transport.AuthorizedSession')
    @patch('google.auth.default')
    def test_default_credentials(self, mock_default, mock_session):
        """Test application default credentials."""
        credentials = Mock()
        mock_default.return_value = (credentials, "project")

        transport = transport_with_default_credentials()

        mock_default.assert_called_once_with(scopes=[CLOUD_PLATFORM_SCOPE])
        mock_session.assert_called_once_with(credentials)
        assert transport.session is mock_session.return_value

    @patch('google.auth.default')
    def test_no_default_credentials(self, mock_default):
        """Test missing application default credentials."""
        mock_default.side_effect = google.auth.exceptions.DefaultCredentialsError("none")

        with pytest.raises(ConfigurationError):
            transport_with_default_credentials()
