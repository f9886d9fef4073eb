"""
PeakInvestigator API client implementation.

Infrastructure layer for the control-plane request/response protocol.
"""

import logging
from typing import Any, Dict, Optional, Tuple, Type, Union

import requests
from requests.exceptions import RequestException

from peakinvestigator.domain.exceptions import (
    MisconfiguredError,
    ProtocolError,
    RejectedError,
    TransportError,
)
from peakinvestigator.domain.models import Account
from peakinvestigator.shared.logging import redact
from peakinvestigator.shared.types import JSONObject

API_SUFFIX = '/api/'
API_VERSION = '2.12'

INIT = 'INIT'
RUN = 'RUN'
STATUS = 'STATUS'
PREP = 'PREP'
SFTP = 'SFTP'
DELETE = 'DELETE'

ACTIONS = (INIT, RUN, STATUS, PREP, SFTP, DELETE)

HTML_MARKERS = ('<html', '<!doctype html')


def require_field(
    response: JSONObject,
    name: str,
    field_type: Union[Type, Tuple[Type, ...]] = str
) -> Any:
    """
    Extract a field the caller cannot do without.

    Args:
        response: Decoded service response
        name: Field name
        field_type: Accepted type(s) for the value

    Returns:
        Field value

    Raises:
        ProtocolError: If the field is absent, null or of the wrong type
    """
    value = response.get(name)
    if value is None:
        raise ProtocolError(f"missing field {name}")
    if not isinstance(value, field_type):
        raise ProtocolError(f"field {name} has unexpected type {type(value).__name__}")
    return value


def is_html(body: str) -> bool:
    """Check if a response body is an HTML page."""
    return body.lstrip()[:20].lower().startswith(HTML_MARKERS)


class RemoteServiceClient:
    """
    PeakInvestigator API client.

    Sends one form-encoded PUT per action to the fixed ``/api/`` endpoint of
    a server and classifies the reply. Holds no state between calls besides
    the HTTP session; account credentials are passed with every call.
    """

    def __init__(
        self,
        server: str,
        api_version: str = API_VERSION,
        timeout: float = 60.0,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize client.

        Args:
            server: Server address without scheme (e.g. peakinvestigator.veritomyx.com)
            api_version: Protocol version token sent with every request
            timeout: Request timeout in seconds
            session: Optional requests session to reuse
            logger: Logger instance
        """
        if not server:
            raise ValueError("Server address is required")

        self.server = server
        self.api_version = api_version
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)

        self.session = session or requests.Session()
        self.session.headers.update({
            'Accept': 'application/json',
        })

    @property
    def url(self) -> str:
        return f"https://{self.server.strip('/')}{API_SUFFIX}"

    def with_server(self, server: str) -> 'RemoteServiceClient':
        """Client for another server sharing this one's settings."""
        if server == self.server:
            return self
        return RemoteServiceClient(
            server=server,
            api_version=self.api_version,
            timeout=self.timeout,
            session=self.session,
            logger=self.logger
        )

    def build_params(
        self,
        action: str,
        account: Account,
        parameters: Optional[Dict[str, Any]] = None
    ) -> Dict[str, str]:
        """Assemble the form fields for one action."""
        if action not in ACTIONS:
            raise ValueError(f"Unknown action: {action}")

        params = {
            'Version': self.api_version,
            'User': account.username,
            'Code': account.password,
            'Action': action,
        }
        for key, value in (parameters or {}).items():
            if value is None:
                continue
            params[key] = str(value)
        return params

    def call(
        self,
        action: str,
        account: Account,
        parameters: Optional[Dict[str, Any]] = None
    ) -> JSONObject:
        """
        Issue one action and return the decoded reply.

        Args:
            action: One of INIT, RUN, STATUS, PREP, SFTP, DELETE
            account: Account whose credentials sign the request
            parameters: Action-specific fields

        Returns:
            Decoded JSON object

        Raises:
            TransportError: On connectivity problems or an HTTP error status
            MisconfiguredError: If the server answered with an HTML page
            ProtocolError: If the body is not a JSON object
            RejectedError: If the reply carries an ``Error`` field
        """
        params = self.build_params(action, account, parameters)
        self.logger.debug(f"{action} -> {self.url} {redact(params)}")

        try:
            response = self.session.put(self.url, data=params, timeout=self.timeout)
        except RequestException as e:
            error_msg = f"{action} request to {self.server} failed: {e}"
            self.logger.error(error_msg)
            raise TransportError(error_msg) from e

        body = response.text or ''

        if is_html(body):
            error_msg = f"There is a problem with the server address {self.server} ({action} returned HTML)"
            self.logger.error(error_msg)
            raise MisconfiguredError(error_msg)

        if not response.ok:
            error_msg = f"{action} request to {self.server} failed: HTTP {response.status_code} {response.reason}"
            self.logger.error(error_msg)
            raise TransportError(error_msg)

        try:
            data = response.json()
        except ValueError as e:
            self.logger.error(f"Error parsing JSON returned from {action}: {body[:200]!r}")
            raise ProtocolError("malformed response") from e

        if not isinstance(data, dict):
            self.logger.error(f"{action} returned {type(data).__name__}, expected an object")
            raise ProtocolError("malformed response")

        if 'Error' in data:
            message = str(data['Error'])
            self.logger.error(f"{action} rejected by {self.server}: {message}")
            raise RejectedError(message, action=action)

        self.logger.debug(f"{action} <- {sorted(data)}")
        return data
