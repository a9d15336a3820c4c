"""
Core protocol types.

These dataclasses represent HTTP requests and responses at the protocol level,
independent of any I/O implementation, plus the parsed form of the
multistatus responses the server sends back.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Dict, Optional, Tuple, Type, Union

from lxml.etree import _Element

from davtasks.elements import cdav, dav
from davtasks.lib import error

if TYPE_CHECKING:
    from davtasks.lib.vcal import VCalendar


class DAVMethod(Enum):
    """The HTTP methods this library issues."""

    PROPFIND = "PROPFIND"
    REPORT = "REPORT"
    PUT = "PUT"


@dataclass(frozen=True)
class Credentials:
    """Username and password, used for Basic authentication"""

    username: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class DAVRequest:
    """
    Represents an HTTP request to be made.

    This is a pure data structure with no I/O. It describes what request
    should be made, but does not make it.

    Attributes:
        method: HTTP method (PROPFIND, REPORT, PUT)
        url: Full URL for the request
        headers: HTTP headers as dict
        body: Request body as bytes (optional)
    """

    method: DAVMethod
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[bytes] = None

    @property
    def depth(self) -> Optional[int]:
        if "Depth" in self.headers:
            return int(self.headers["Depth"])
        return None


@dataclass(frozen=True)
class DAVResponse:
    """
    Represents an HTTP response received.

    This is a pure data structure with no I/O. It contains the response
    data but does not fetch it.

    Attributes:
        status: HTTP status code
        headers: HTTP headers as dict
        body: Response body as bytes
    """

    status: int
    headers: Dict[str, str]
    body: bytes

    @property
    def ok(self) -> bool:
        """True if status indicates success (2xx)."""
        return 200 <= self.status < 300

    @property
    def reason(self) -> str:
        """Return a reason phrase for the status code."""
        reasons = {
            200: "OK",
            201: "Created",
            204: "No Content",
            207: "Multi-Status",
            400: "Bad Request",
            401: "Unauthorized",
            403: "Forbidden",
            404: "Not Found",
            405: "Method Not Allowed",
            409: "Conflict",
            412: "Precondition Failed",
            415: "Unsupported Media Type",
            500: "Internal Server Error",
            501: "Not Implemented",
            502: "Bad Gateway",
            503: "Service Unavailable",
        }
        return reasons.get(self.status, "Unknown")


## Property values found in a multistatus response.  Which class is
## used is decided by the tag of the property element.


@dataclass(frozen=True)
class ChangeToken:
    """DAV:getetag"""

    value: str


@dataclass(frozen=True, eq=False)
class CalendarDataProperty:
    """
    CALDAV:calendar-data.  ``document`` is None if the data could not
    be parsed, ``parse_error`` then tells why.
    """

    text: str
    document: Optional["VCalendar"] = None
    parse_error: Optional[error.DAVError] = None


@dataclass(frozen=True)
class DisplayName:
    """DAV:displayname"""

    value: str


@dataclass(frozen=True)
class ResourceType:
    """DAV:resourcetype, the tags of the children"""

    types: Tuple[str, ...] = ()


@dataclass(frozen=True)
class SupportedComponents:
    """CALDAV:supported-calendar-component-set, the component names"""

    names: Tuple[str, ...] = ()


@dataclass(frozen=True)
class HrefProperty:
    """A property wrapping a DAV:href, like current-user-principal"""

    href: Optional[str] = None


@dataclass(frozen=True)
class Unrecognized:
    """Any property we don't have a parser for"""

    name: str


PropertyValue = Union[
    ChangeToken,
    CalendarDataProperty,
    DisplayName,
    ResourceType,
    SupportedComponents,
    HrefProperty,
    Unrecognized,
]


def status_code(status: Optional[str]) -> Optional[int]:
    """
    The code from a status line like "HTTP/1.1 404 Not Found".  The
    reason phrase is optional, "HTTP/1.1 404" gives 404 as well.
    """
    if not status:
        return None
    parts = status.split()
    if len(parts) >= 2 and parts[1].isdigit():
        return int(parts[1])
    return None


@dataclass
class MultistatusEntry:
    """
    One DAV:response element of a multistatus document.

    Attributes:
        href: The href of the resource, as given by the server
        status: Status line, like "HTTP/1.1 200 OK" (None if the server gave none)
        properties: Dict of property tag (clark notation) -> PropertyValue
    """

    href: str
    status: Optional[str] = None
    properties: Dict[str, PropertyValue] = field(default_factory=dict)

    @classmethod
    def parse(cls, element: _Element) -> "MultistatusEntry":
        from .xml_parsers import parse_response

        return parse_response(element)

    @property
    def status_code(self) -> Optional[int]:
        return status_code(self.status)

    def _typed(self, tag: str, kind: Type) -> Optional[PropertyValue]:
        value = self.properties.get(tag)
        if value is None:
            return None
        if not isinstance(value, kind):
            raise error.InvariantViolation(
                url=self.href,
                reason="property %s held as %s, expected %s"
                % (tag, type(value).__name__, kind.__name__),
            )
        return value

    def etag(self) -> Optional[str]:
        value = self._typed(dav.GetEtag.tag, ChangeToken)
        return value.value if value else None

    def calendar_data(self) -> Optional[CalendarDataProperty]:
        return self._typed(cdav.CalendarData.tag, CalendarDataProperty)

    def document(self) -> Optional["VCalendar"]:
        value = self.calendar_data()
        return value.document if value else None

    def displayname(self) -> Optional[str]:
        value = self._typed(dav.DisplayName.tag, DisplayName)
        return value.value if value else None

    def resource_types(self) -> Optional[Tuple[str, ...]]:
        value = self._typed(dav.ResourceType.tag, ResourceType)
        return value.types if value else None

    def supported_components(self) -> Optional[Tuple[str, ...]]:
        value = self._typed(cdav.SupportedCalendarComponentSet.tag, SupportedComponents)
        return value.names if value else None

    def href_property(self, tag: str) -> Optional[str]:
        value = self._typed(tag, HrefProperty)
        return value.href if value else None
