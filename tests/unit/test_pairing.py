"""
Pairing Client Tests - request shape and response handling.
"""

import json
from unittest.mock import MagicMock, patch

import pytest
import requests

from devicetrust.errors import NetworkError, PairingRejected, ProtocolError
from devicetrust.pairing import PairingClient, devices_url, register_device

BASE_URL = "https://api.example.com"
JWT = "xyz"
REALM = "test"
HW_ID = "AABBCCDDEEFF"


def _response(status_code, body=None, raw=None):
    response = MagicMock()
    response.status_code = status_code
    if raw is not None:
        response.content = raw
        response.json.side_effect = ValueError("not json")
    else:
        response.content = json.dumps(body).encode() if body is not None else b""
        response.json.return_value = body
    return response


class TestRequestShape:
    """The POST sent to the pairing API."""

    @patch("requests.Session.request")
    def test_url_body_and_headers(self, mock_request):
        mock_request.return_value = _response(201, {"data": {"credentials_secret": "abc123"}})

        with PairingClient() as client:
            client.register(BASE_URL, JWT, REALM, HW_ID)

        mock_request.assert_called_once()
        args, kwargs = mock_request.call_args
        assert args[0] == "POST"
        assert args[1] == "https://api.example.com/v1/test/agent/devices"
        assert kwargs["json"] == {"data": {"hw_id": "AABBCCDDEEFF"}}
        assert kwargs["headers"]["Authorization"] == "Bearer xyz"
        assert kwargs["headers"]["Content-Type"] == "application/json"

    @patch("requests.Session.request")
    def test_timeout_and_tls_verification_passed(self, mock_request):
        mock_request.return_value = _response(201, {"data": {"credentials_secret": "abc123"}})

        with PairingClient(timeout=5.0, verify_ssl=False) as client:
            client.register(BASE_URL, JWT, REALM, HW_ID)

        _, kwargs = mock_request.call_args
        assert kwargs["timeout"] == 5.0
        assert kwargs["verify"] is False

    def test_devices_url_trailing_slash(self):
        assert devices_url("https://api.example.com/", "test") == "https://api.example.com/v1/test/agent/devices"


class TestResponseHandling:
    """Mapping of pairing responses to results and errors."""

    @patch("requests.Session.request")
    def test_created_returns_secret(self, mock_request):
        mock_request.return_value = _response(201, {"data": {"credentials_secret": "abc123"}})

        with PairingClient() as client:
            assert client.register(BASE_URL, JWT, REALM, HW_ID) == "abc123"

    @patch("requests.Session.request")
    def test_forbidden_is_rejected(self, mock_request):
        mock_request.return_value = _response(403, {"errors": {"detail": "Forbidden"}})

        with PairingClient() as client:
            with pytest.raises(PairingRejected) as exc_info:
                client.register(BASE_URL, JWT, REALM, HW_ID)

        assert exc_info.value.status == 403
        assert exc_info.value.code == "DT_PAIRING_REJECTED"

    @pytest.mark.parametrize("status", [200, 204, 401, 422, 500, 503])
    @patch("requests.Session.request")
    def test_any_other_status_is_rejected(self, mock_request, status):
        mock_request.return_value = _response(status, {"data": {"credentials_secret": "abc123"}})

        with PairingClient() as client:
            with pytest.raises(PairingRejected) as exc_info:
                client.register(BASE_URL, JWT, REALM, HW_ID)

        assert exc_info.value.status == status

    @patch("requests.Session.request")
    def test_created_without_secret(self, mock_request):
        mock_request.return_value = _response(201, {"data": {}})

        with PairingClient() as client:
            with pytest.raises(ProtocolError):
                client.register(BASE_URL, JWT, REALM, HW_ID)

    @pytest.mark.parametrize(
        "body",
        [
            {"data": {"credentials_secret": 42}},
            {"data": {"credentials_secret": None}},
            {"data": "abc123"},
            {},
            [],
        ],
    )
    @patch("requests.Session.request")
    def test_created_with_malformed_body(self, mock_request, body):
        mock_request.return_value = _response(201, body)

        with PairingClient() as client:
            with pytest.raises(ProtocolError):
                client.register(BASE_URL, JWT, REALM, HW_ID)

    @patch("requests.Session.request")
    def test_created_with_non_json_body(self, mock_request):
        mock_request.return_value = _response(201, raw=b"<html>ok</html>")

        with PairingClient() as client:
            with pytest.raises(ProtocolError):
                client.register(BASE_URL, JWT, REALM, HW_ID)

    @pytest.mark.parametrize(
        "exc",
        [
            requests.exceptions.ConnectionError("refused"),
            requests.exceptions.SSLError("bad cert"),
            requests.exceptions.Timeout("slow"),
        ],
    )
    @patch("requests.Session.request")
    def test_transport_failure(self, mock_request, exc):
        mock_request.side_effect = exc

        with PairingClient() as client:
            with pytest.raises(NetworkError) as exc_info:
                client.register(BASE_URL, JWT, REALM, HW_ID)

        assert exc_info.value.code == "DT_PAIRING_NETWORK_ERROR"
        mock_request.assert_called_once()

    @patch("requests.Session.request")
    def test_no_retry_on_server_error(self, mock_request):
        mock_request.return_value = _response(503)

        with PairingClient() as client:
            with pytest.raises(PairingRejected):
                client.register(BASE_URL, JWT, REALM, HW_ID)

        assert mock_request.call_count == 1

    @patch("requests.Session.request")
    def test_response_closed(self, mock_request):
        response = _response(403)
        mock_request.return_value = response

        with PairingClient() as client:
            with pytest.raises(PairingRejected):
                client.register(BASE_URL, JWT, REALM, HW_ID)

        response.close.assert_called_once()


class TestSessionLifecycle:
    def test_owned_session_closed(self):
        client = PairingClient()
        with patch.object(client.session, "close") as mock_close:
            client.close()
        mock_close.assert_called_once()

    def test_injected_session_left_open(self):
        session = MagicMock(spec=requests.Session)
        session.headers = {}
        with PairingClient(session=session):
            pass
        session.close.assert_not_called()

    @patch("requests.Session.close")
    @patch("requests.Session.request")
    def test_register_device_closes_session(self, mock_request, mock_close):
        mock_request.return_value = _response(201, {"data": {"credentials_secret": "abc123"}})

        assert register_device(BASE_URL, JWT, REALM, HW_ID) == "abc123"
        mock_close.assert_called_once()

    @patch("requests.Session.close")
    @patch("requests.Session.request")
    def test_register_device_closes_session_on_error(self, mock_request, mock_close):
        mock_request.side_effect = requests.exceptions.ConnectionError("refused")

        with pytest.raises(NetworkError):
            register_device(BASE_URL, JWT, REALM, HW_ID)
        mock_close.assert_called_once()
