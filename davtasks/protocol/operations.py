"""
CalDAV protocol operations combining request building and response parsing.

This class provides a high-level interface to CalDAV operations while
remaining completely I/O-free.
"""

import base64
from typing import Dict, List, Optional, Union

from davtasks import __version__
from davtasks.lib import error

from .types import (
    Credentials,
    DAVMethod,
    DAVRequest,
    DAVResponse,
    MultistatusEntry,
)
from .xml_builders import (
    build_calendar_list_body,
    build_calendar_query_body,
    build_home_set_propfind_body,
    build_principal_propfind_body,
)
from .xml_parsers import parse_multistatus


class CalDAVProtocol:
    """
    Sans-I/O CalDAV protocol handler.

    Builds requests and parses responses without doing any I/O.
    All HTTP communication is delegated to an external I/O implementation.

    Example:
        protocol = CalDAVProtocol(Credentials("user", "pass"))

        # Build request
        request = protocol.principal_request("https://cal.example.com/")

        # Execute with your I/O (not shown)
        response = io.execute(request)

        # Parse response
        entries = protocol.parse_multistatus(request, response)
    """

    def __init__(
        self,
        credentials: Optional[Credentials] = None,
        headers: Optional[Dict[str, str]] = None,
        huge_tree: bool = False,
    ):
        """
        Initialize the protocol handler.

        Args:
            credentials: Username and password for Basic authentication
            headers: Extra headers to send with every request
            huge_tree: Allow parsing very large XML documents
        """
        self.credentials = credentials
        self.extra_headers = dict(headers or {})
        self.huge_tree = huge_tree
        self._auth_header = self._build_auth_header(credentials)

    def _build_auth_header(
        self,
        credentials: Optional[Credentials],
    ) -> Optional[str]:
        """Build Basic auth header if credentials provided."""
        if credentials is not None:
            encoded = base64.b64encode(
                f"{credentials.username}:{credentials.password}".encode("utf-8")
            ).decode("ascii")
            return f"Basic {encoded}"
        return None

    def _base_headers(self) -> Dict[str, str]:
        """Return base headers for all requests."""
        headers = {
            "User-Agent": "davtasks/" + __version__,
            "Content-Type": "application/xml; charset=utf-8",
            "Accept": "text/xml, text/calendar",
        }
        headers.update(self.extra_headers)
        if self._auth_header:
            headers["Authorization"] = self._auth_header
        return headers

    # =========================================================================
    # Request builders
    # =========================================================================

    def propfind_request(self, url: str, body: bytes, depth: int = 0) -> DAVRequest:
        """
        Build a PROPFIND request.

        Args:
            url: Full URL of the resource
            body: PROPFIND body, see xml_builders
            depth: Depth header value (0 or 1)

        Returns:
            DAVRequest ready for execution
        """
        headers = {
            **self._base_headers(),
            "Depth": str(depth),
        }
        return DAVRequest(
            method=DAVMethod.PROPFIND,
            url=str(url),
            headers=headers,
            body=body,
        )

    def report_request(self, url: str, body: bytes, depth: int = 1) -> DAVRequest:
        """Build a REPORT request"""
        headers = {
            **self._base_headers(),
            "Depth": str(depth),
        }
        return DAVRequest(
            method=DAVMethod.REPORT,
            url=str(url),
            headers=headers,
            body=body,
        )

    def principal_request(self, url: str) -> DAVRequest:
        """Depth 0 PROPFIND for the current-user-principal property"""
        return self.propfind_request(url, build_principal_propfind_body(), depth=0)

    def home_set_request(self, principal_url: str) -> DAVRequest:
        """Depth 0 PROPFIND for the calendar-home-set of a principal"""
        return self.propfind_request(
            principal_url, build_home_set_propfind_body(), depth=0
        )

    def calendar_list_request(self, home_set_url: str) -> DAVRequest:
        """Depth 1 PROPFIND listing the collections of a calendar home set"""
        return self.propfind_request(home_set_url, build_calendar_list_body(), depth=1)

    def todo_query_request(self, calendar_url: str) -> DAVRequest:
        """Depth 1 calendar-query REPORT for all objects holding a VTODO"""
        return self.report_request(
            calendar_url, build_calendar_query_body(comp_type="VTODO"), depth=1
        )

    def put_request(
        self,
        url: str,
        data: Union[str, bytes],
        content_type: str = "text/calendar; charset=utf-8",
        etag: Optional[str] = None,
    ) -> DAVRequest:
        """
        Build a PUT request to create/update a resource.

        Args:
            url: Full URL of the resource
            data: Resource content
            content_type: Content-Type header
            etag: If-Match header for conditional update

        Returns:
            DAVRequest ready for execution
        """
        if isinstance(data, str):
            data = data.encode("utf-8")
        headers = self._base_headers()
        headers["Content-Type"] = content_type
        if etag:
            headers["If-Match"] = etag

        return DAVRequest(
            method=DAVMethod.PUT,
            url=str(url),
            headers=headers,
            body=data,
        )

    # =========================================================================
    # Response handling
    # =========================================================================

    def check_response(
        self,
        request: DAVRequest,
        response: DAVResponse,
        expected_status: Optional[List[int]] = None,
    ) -> DAVResponse:
        """
        Raises the TransportError subclass matching the request method
        if the response does not indicate success.

        Args:
            request: The DAVRequest that was sent
            response: The DAVResponse to check
            expected_status: List of acceptable status codes (default: 2xx)

        Returns:
            The response, for chaining
        """
        if expected_status:
            ok = response.status in expected_status
        else:
            ok = response.ok
        if ok:
            return response
        if response.status in (401, 403):
            raise error.AuthorizationError(url=request.url, reason=response.reason)
        raise error.exception_by_method[request.method.value.lower()](
            url=request.url, reason=error.errmsg(response)
        )

    def parse_multistatus(
        self,
        request: DAVRequest,
        response: DAVResponse,
    ) -> List[MultistatusEntry]:
        """
        Check and parse a multistatus response.

        Args:
            request: The DAVRequest that was sent
            response: The DAVResponse from the server

        Returns:
            List of MultistatusEntry, one per DAV:response
        """
        self.check_response(request, response)
        try:
            response.body.decode("utf-8")
        except UnicodeDecodeError as e:
            raise error.TransportError(
                url=request.url, reason="response body is not utf-8: %s" % e
            )
        return parse_multistatus(response.body, huge_tree=self.huge_tree)
