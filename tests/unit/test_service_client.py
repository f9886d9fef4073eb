"""
Unit tests for the PeakInvestigator service client.
"""

import pytest
from unittest.mock import Mock
import requests

from peakinvestigator.infrastructure.service.client import (
    ACTIONS,
    RemoteServiceClient,
    is_html,
    require_field,
)
from peakinvestigator.domain.exceptions import (
    MisconfiguredError,
    ProtocolError,
    RejectedError,
    TransportError,
)


@pytest.fixture
def http_session():
    """Provide mock requests session."""
    session = Mock(spec=requests.Session)
    session.headers = {}
    return session


@pytest.fixture
def client(http_session):
    """Provide client bound to the mock session."""
    return RemoteServiceClient(server="pi.example.com", session=http_session)


class TestRequestConstruction:
    """Test request parameters and endpoint."""

    def test_url_uses_api_suffix(self, client):
        assert client.url == "https://pi.example.com/api/"

    def test_base_fields_always_present(self, client, account):
        params = client.build_params("STATUS", account, {"Job": "J123"})

        assert params == {
            "Version": "2.12",
            "User": "alice",
            "Code": "s3cret-code",
            "Action": "STATUS",
            "Job": "J123",
        }

    def test_values_are_stringified_and_none_dropped(self, client, account):
        params = client.build_params("INIT", account, {"ScanCount": 10, "MinMass": None})

        assert params["ScanCount"] == "10"
        assert "MinMass" not in params

    def test_unknown_action_rejected(self, client, account):
        with pytest.raises(ValueError, match="Unknown action"):
            client.build_params("LAUNCH", account)

    def test_call_sends_form_encoded_put(self, client, http_session, account, response_factory):
        http_session.put.return_value = response_factory({"Job": "J123", "Funds": "42.50"})

        client.call("INIT", account, {"ID": "1001", "ScanCount": 10, "MinMass": 100, "MaxMass": 2000})

        args, kwargs = http_session.put.call_args
        assert args[0] == "https://pi.example.com/api/"
        assert kwargs["data"]["Action"] == "INIT"
        assert kwargs["data"]["MaxMass"] == "2000"
        assert kwargs["timeout"] == 60.0

    def test_secret_not_logged(self, http_session, account, response_factory):
        logger = Mock()
        client = RemoteServiceClient(server="pi.example.com", session=http_session, logger=logger)
        http_session.put.return_value = response_factory({"Status": "Running"})

        client.call("STATUS", account, {"Job": "J1"})

        logged = " ".join(str(c) for c in logger.method_calls)
        assert "s3cret-code" not in logged


class TestResponseClassification:
    """Test how replies are classified."""

    def test_returns_decoded_object(self, client, http_session, account, response_factory):
        http_session.put.return_value = response_factory({"Job": "J123", "Funds": "42.50"})

        result = client.call("INIT", account)

        assert result == {"Job": "J123", "Funds": "42.50"}

    def test_error_field_is_rejection(self, client, http_session, account, response_factory):
        http_session.put.return_value = response_factory({"Error": "Insufficient funds"})

        with pytest.raises(RejectedError) as exc_info:
            client.call("INIT", account)

        assert exc_info.value.message == "Insufficient funds"
        assert exc_info.value.action == "INIT"

    @pytest.mark.parametrize("action", ACTIONS)
    def test_html_body_is_misconfigured_for_every_action(self, client, http_session, account, response_factory, action):
        http_session.put.return_value = response_factory("<html><head><title>Not here</title></head></html>")

        with pytest.raises(MisconfiguredError):
            client.call(action, account)

    def test_html_wins_over_error_status(self, client, http_session, account, response_factory):
        http_session.put.return_value = response_factory("<html><head>404</head></html>", status_code=404)

        with pytest.raises(MisconfiguredError):
            client.call("STATUS", account)

    def test_malformed_json(self, client, http_session, account, response_factory):
        http_session.put.return_value = response_factory("Job=J123")

        with pytest.raises(ProtocolError, match="malformed response"):
            client.call("INIT", account)

    def test_non_object_json_is_malformed(self, client, http_session, account, response_factory):
        http_session.put.return_value = response_factory(["J123"])

        with pytest.raises(ProtocolError, match="malformed response"):
            client.call("INIT", account)

    def test_transport_failure(self, client, http_session, account):
        http_session.put.side_effect = requests.ConnectionError("Name or service not known")

        with pytest.raises(TransportError, match="Name or service not known"):
            client.call("INIT", account)

    def test_http_error_status(self, client, http_session, account, response_factory):
        http_session.put.return_value = response_factory({"detail": "oops"}, status_code=500)

        with pytest.raises(TransportError, match="HTTP 500"):
            client.call("STATUS", account)

    def test_no_internal_retry(self, client, http_session, account):
        http_session.put.side_effect = requests.Timeout("timed out")

        with pytest.raises(TransportError):
            client.call("STATUS", account)

        assert http_session.put.call_count == 1


class TestHelpers:
    """Test field extraction helpers."""

    def test_require_field_present(self):
        assert require_field({"Job": "J1"}, "Job") == "J1"

    def test_require_field_missing(self):
        with pytest.raises(ProtocolError, match="missing field Job"):
            require_field({}, "Job")

    def test_require_field_wrong_type(self):
        with pytest.raises(ProtocolError, match="unexpected type"):
            require_field({"Job": ["J1"]}, "Job")

    @pytest.mark.parametrize("body", [
        "<html><head>",
        "  <HTML>",
        "<!DOCTYPE html><html>",
    ])
    def test_is_html(self, body):
        assert is_html(body) is True

    def test_json_is_not_html(self):
        assert is_html('{"Job": "<html>"}') is False

    def test_with_server_shares_settings(self, client):
        other = client.with_server("other.example.com")

        assert other.server == "other.example.com"
        assert other.session is client.session
        assert other.timeout == client.timeout
        assert client.with_server("pi.example.com") is client

    def test_server_required(self):
        with pytest.raises(ValueError):
            RemoteServiceClient(server="")
