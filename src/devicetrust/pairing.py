"""
Pairing Client - Device Registration Handshake

Exchanges a short-lived JWT for the long-lived device credentials secret:

    POST {base_url}/v1/{realm}/agent/devices
    Authorization: Bearer <jwt>
    {"data": {"hw_id": "<hw_id>"}}

    201 {"data": {"credentials_secret": "<secret>"}}

The client performs exactly one attempt; retry policy belongs to the caller.
The returned secret is not stored or logged here.
"""

from typing import Any, Optional

import requests

from . import __version__
from .errors import NetworkError, PairingRejected, ProtocolError
from .logging import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 30.0
REGISTERED_STATUS = 201


def devices_url(base_url: str, realm: str) -> str:
    return f"{base_url.rstrip('/')}/v1/{realm}/agent/devices"


def extract_credentials_secret(body: Any) -> str:
    """Pull ``data.credentials_secret`` out of a decoded response body."""
    data = body.get("data") if isinstance(body, dict) else None
    secret = data.get("credentials_secret") if isinstance(data, dict) else None
    if not isinstance(secret, str):
        raise ProtocolError("data.credentials_secret missing or not a string")
    return secret


class PairingClient:
    """
    HTTP client for the pairing API.

    Usage:
        with PairingClient(timeout=10) as client:
            secret = client.register(base_url, jwt, realm, hw_id)
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        verify_ssl: bool = True,
        session: Optional[requests.Session] = None,
    ):
        self.timeout = timeout
        self.verify_ssl = verify_ssl
        self._owns_session = session is None
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": f"devicetrust/{__version__}"})

    def __enter__(self) -> "PairingClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if self._owns_session:
            self.session.close()

    def register(self, base_url: str, jwt: str, realm: str, hw_id: str) -> str:
        """
        Register ``hw_id`` in ``realm`` and return the issued credentials secret.

        Raises:
            NetworkError: On DNS, connection, TLS or timeout failures
            PairingRejected: On any status other than 201
            ProtocolError: On a 201 whose body lacks a string secret
        """
        url = devices_url(base_url, realm)
        headers = {
            "Authorization": f"Bearer {jwt}",
            "Content-Type": "application/json",
        }
        payload = {"data": {"hw_id": hw_id}}

        try:
            response = self.session.request(
                "POST",
                url,
                json=payload,
                headers=headers,
                timeout=self.timeout,
                verify=self.verify_ssl,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"HTTP POST request failed: {type(e).__name__}")
            raise NetworkError(type(e).__name__, url=url) from e

        try:
            status = response.status_code
            logger.info(f"HTTP POST Status = {status}, content_length = {len(response.content or b'')}")

            if status != REGISTERED_STATUS:
                raise PairingRejected(status, url=url)

            try:
                body = response.json()
            except ValueError as e:
                raise ProtocolError("response body is not JSON") from e
        finally:
            response.close()

        secret = extract_credentials_secret(body)
        logger.info(f"Device {hw_id} registered in realm {realm}")
        return secret


def register_device(
    base_url: str,
    jwt: str,
    realm: str,
    hw_id: str,
    timeout: float = DEFAULT_TIMEOUT,
    verify_ssl: bool = True,
) -> str:
    """One-shot registration with a client that is closed afterwards."""
    with PairingClient(timeout=timeout, verify_ssl=verify_ssl) as client:
        return client.register(base_url, jwt, realm, hw_id)
