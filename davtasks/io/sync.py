"""
Synchronous I/O implementation using the requests library.
"""

import datetime
import logging
from tempfile import NamedTemporaryFile
from typing import Optional

import requests
from requests.structures import CaseInsensitiveDict

from davtasks.lib import error
from davtasks.lib.python_utilities import to_wire
from davtasks.protocol.types import DAVRequest, DAVResponse

log = logging.getLogger("davtasks")


class SyncIO:
    """
    Synchronous I/O shell using the requests library.

    This is a thin wrapper that executes DAVRequest objects via HTTP
    and returns DAVResponse objects.  Connection problems are raised
    as TransportError, HTTP error statuses are passed on untouched
    for the protocol layer to judge.

    Example:
        io = SyncIO()
        request = protocol.principal_request("https://cal.example.com/")
        response = io.execute(request)
        entries = protocol.parse_multistatus(request, response)
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = 30.0,
        verify: bool = True,
    ):
        """
        Initialize the sync I/O handler.

        Args:
            session: Existing requests Session to use (creates new if None)
            timeout: Request timeout in seconds
            verify: Verify SSL certificates
        """
        self._owns_session = session is None
        self.session = session or requests.Session()
        self.timeout = timeout
        self.verify = verify

    def execute(self, request: DAVRequest) -> DAVResponse:
        """
        Execute a DAVRequest and return DAVResponse.

        Args:
            request: The request to execute

        Returns:
            DAVResponse with status, headers, and body
        """
        log.debug(
            "sending request - method={0}, url={1}, headers={2}\nbody:\n{3}".format(
                request.method.value, request.url, _loggable(request.headers), request.body
            )
        )
        try:
            r = self.session.request(
                method=request.method.value,
                url=request.url,
                headers=request.headers,
                data=request.body,
                timeout=self.timeout,
                verify=self.verify,
            )
        except requests.RequestException as e:
            raise error.TransportError(url=request.url, reason=str(e)) from e
        log.debug(
            "server responded with %i %s, headers=%s\nbody:\n%s"
            % (r.status_code, r.reason, dict(r.headers), r.content)
        )

        response = DAVResponse(
            status=r.status_code,
            headers=CaseInsensitiveDict(r.headers),
            body=r.content,
        )
        if error.debug_dump_communication:
            _dump_communication(request, response)
        return response

    def close(self) -> None:
        """Close the session if we created it."""
        if self._owns_session and self.session:
            self.session.close()

    def __enter__(self) -> "SyncIO":
        """Context manager entry."""
        return self

    def __exit__(self, *args) -> None:
        """Context manager exit."""
        self.close()


def _loggable(headers):
    ## never log the password
    return {k: ("***" if k.lower() == "authorization" else v) for k, v in headers.items()}


def _dump_communication(request: DAVRequest, response: DAVResponse) -> None:
    with NamedTemporaryFile(prefix="davtaskscomm", delete=False) as commlog:
        commlog.write(b"=" * 80 + b"\n")
        commlog.write(f"{datetime.datetime.now():%FT%H:%M:%S}".encode("utf-8"))
        commlog.write(b"\n====>\n")
        commlog.write(f"{request.method.value} {request.url}\n".encode("utf-8"))
        headers = _loggable(request.headers)
        commlog.write(b"\n".join(to_wire(f"{x}: {headers[x]}") for x in headers))
        commlog.write(b"\n\n")
        commlog.write(to_wire(request.body or b""))
        commlog.write(b"<====\n")
        commlog.write(f"{response.status} {response.reason}\n".encode("utf-8"))
        commlog.write(
            b"\n".join(
                to_wire(f"{x}: {response.headers[x]}") for x in response.headers
            )
        )
        commlog.write(b"\n\n")
        commlog.write(to_wire(response.body))
        commlog.write(b"\n")
