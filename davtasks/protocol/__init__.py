"""
Sans-I/O CalDAV protocol implementation.

This module provides protocol-level operations without any I/O.
It builds requests and parses responses as pure data transformations.

The protocol layer is organized into:
- types: Core data structures (DAVRequest, DAVResponse, MultistatusEntry)
- xml_builders: Pure functions to build XML request bodies
- xml_parsers: Pure functions to parse XML response bodies
- operations: High-level CalDAVProtocol class combining builders and parsers

Example usage:

    from davtasks.protocol import CalDAVProtocol, Credentials

    protocol = CalDAVProtocol(Credentials("user", "pass"))

    # Build a request (no I/O)
    request = protocol.calendar_list_request("https://cal.example.com/calendars/user/")

    # Execute via your preferred I/O (sync or mock)
    response = your_http_client.execute(request)

    # Parse response (no I/O)
    entries = protocol.parse_multistatus(request, response)
"""

from .types import (
    # Enums
    DAVMethod,
    # Request/Response
    Credentials,
    DAVRequest,
    DAVResponse,
    # Property values
    CalendarDataProperty,
    ChangeToken,
    DisplayName,
    HrefProperty,
    PropertyValue,
    ResourceType,
    SupportedComponents,
    Unrecognized,
    # Result types
    MultistatusEntry,
)
from .xml_builders import (
    build_calendar_list_body,
    build_calendar_query_body,
    build_home_set_propfind_body,
    build_principal_propfind_body,
    build_propfind_body,
)
from .xml_parsers import (
    parse_multistatus,
    parse_response,
)
from .operations import CalDAVProtocol

__all__ = [
    # Enums
    "DAVMethod",
    # Request/Response
    "Credentials",
    "DAVRequest",
    "DAVResponse",
    # Property values
    "CalendarDataProperty",
    "ChangeToken",
    "DisplayName",
    "HrefProperty",
    "PropertyValue",
    "ResourceType",
    "SupportedComponents",
    "Unrecognized",
    # Result types
    "MultistatusEntry",
    # XML Builders
    "build_calendar_list_body",
    "build_calendar_query_body",
    "build_home_set_propfind_body",
    "build_principal_propfind_body",
    "build_propfind_body",
    # XML Parsers
    "parse_multistatus",
    "parse_response",
    # Protocol
    "CalDAVProtocol",
]
