"""
Unit tests for Sans-I/O protocol layer.

These tests verify protocol logic without any HTTP mocking required.
All tests are pure - they test data transformations only.
"""

import base64

import pytest
from lxml import etree

from davtasks.elements import cdav, dav
from davtasks.lib import error
from davtasks.protocol import (
    # Types
    CalDAVProtocol,
    CalendarDataProperty,
    ChangeToken,
    Credentials,
    DAVMethod,
    DAVRequest,
    DAVResponse,
    DisplayName,
    MultistatusEntry,
    Unrecognized,
    # Builders
    build_calendar_list_body,
    build_calendar_query_body,
    build_home_set_propfind_body,
    build_principal_propfind_body,
    # Parsers
    parse_multistatus,
)

TODO_DATA = """BEGIN:VCALENDAR
VERSION:2.0
PRODID:-//Example Corp.//CalDAV Client//EN
BEGIN:VTODO
UID:1
SUMMARY:Buy milk
END:VTODO
END:VCALENDAR
"""


def multistatus(*responses):
    return (
        b'<?xml version="1.0"?>'
        b'<D:multistatus xmlns:D="DAV:" xmlns:C="urn:ietf:params:xml:ns:caldav">'
        + b"".join(responses)
        + b"</D:multistatus>"
    )


def response(href, props, status="HTTP/1.1 200 OK"):
    return (
        "<D:response><D:href>%s</D:href>"
        "<D:propstat><D:prop>%s</D:prop><D:status>%s</D:status></D:propstat>"
        "</D:response>" % (href, props, status)
    ).encode("utf-8")


class TestDAVTypes:
    """Test core DAV types."""

    def test_dav_request_immutable(self):
        """DAVRequest should be immutable (frozen dataclass)."""
        request = DAVRequest(
            method=DAVMethod.PUT,
            url="https://example.com/",
            headers={},
        )
        with pytest.raises(AttributeError):
            request.url = "https://other.com/"

    def test_dav_response_ok(self):
        assert DAVResponse(status=207, headers={}, body=b"").ok
        assert DAVResponse(status=201, headers={}, body=b"").ok
        assert not DAVResponse(status=404, headers={}, body=b"").ok
        assert DAVResponse(status=412, headers={}, body=b"").reason == "Precondition Failed"

    def test_credentials_not_in_repr(self):
        creds = Credentials("user", "hunter2")
        assert "hunter2" not in repr(creds)
        with pytest.raises(AttributeError):
            creds.password = "other"


class TestXMLBuilders:
    """Test XML building functions."""

    def test_principal_propfind(self):
        body = build_principal_propfind_body()
        root = etree.fromstring(body)
        assert root.tag == dav.Propfind.tag
        assert root.find(".//" + dav.CurrentUserPrincipal.tag) is not None

    def test_home_set_propfind(self):
        body = build_home_set_propfind_body()
        assert etree.fromstring(body).find(".//" + cdav.CalendarHomeSet.tag) is not None

    def test_calendar_list(self):
        prop = etree.fromstring(build_calendar_list_body()).find(dav.Prop.tag)
        assert [x.tag for x in prop] == [
            dav.GetEtag.tag,
            dav.DisplayName.tag,
            dav.ResourceType.tag,
            cdav.SupportedCalendarComponentSet.tag,
        ]

    def test_calendar_query(self):
        root = etree.fromstring(build_calendar_query_body("VTODO"))
        assert root.tag == cdav.CalendarQuery.tag
        prop = root.find(dav.Prop.tag)
        assert [x.tag for x in prop] == [dav.GetEtag.tag, cdav.CalendarData.tag]
        outer = root.find(cdav.Filter.tag).find(cdav.CompFilter.tag)
        assert outer.get("name") == "VCALENDAR"
        assert outer.find(cdav.CompFilter.tag).get("name") == "VTODO"


class TestXMLParsers:
    """Test XML parsing functions."""

    def test_parse_properties(self):
        body = multistatus(
            response(
                "/calendars/user/tasks/",
                "<D:displayname>Tasks</D:displayname>"
                '<D:getetag>"abc"</D:getetag>'
                "<D:resourcetype><D:collection/><C:calendar/></D:resourcetype>"
                '<C:supported-calendar-component-set><C:comp name="vtodo"/>'
                '<C:comp name="VEVENT"/></C:supported-calendar-component-set>'
                "<D:owner/>",
            )
        )
        [entry] = parse_multistatus(body)
        assert entry.href == "/calendars/user/tasks/"
        assert entry.status_code == 200
        assert entry.displayname() == "Tasks"
        ## etags are kept as the server sent them, quotes included
        assert entry.etag() == '"abc"'
        assert cdav.Calendar.tag in entry.resource_types()
        assert dav.Collection.tag in entry.resource_types()
        assert entry.supported_components() == ("VTODO", "VEVENT")
        assert entry.properties["{DAV:}owner"] == Unrecognized("{DAV:}owner")

    def test_parse_calendar_data(self):
        body = multistatus(
            response(
                "/calendars/user/tasks/1.ics",
                '<D:getetag>"1"</D:getetag><C:calendar-data>%s</C:calendar-data>'
                % TODO_DATA,
            )
        )
        [entry] = parse_multistatus(body)
        assert entry.document().todos[0].find_property_value("SUMMARY") == "Buy milk"
        assert entry.calendar_data().parse_error is None

    def test_parse_broken_calendar_data(self):
        body = multistatus(
            response(
                "/calendars/user/tasks/1.ics",
                "<C:calendar-data>%s</C:calendar-data>"
                % TODO_DATA.replace("SUMMARY:Buy milk\n", ""),
            ),
            response("/calendars/user/tasks/2.ics", "<C:calendar-data/>"),
        )
        first, second = parse_multistatus(body)
        assert first.document() is None
        assert isinstance(first.calendar_data().parse_error, error.DocumentParseError)
        assert second.document() is None
        assert second.calendar_data().parse_error is not None

    def test_not_found_properties_are_absent(self):
        body = multistatus(
            b"<D:response><D:href>/calendars/user/</D:href>"
            b"<D:propstat><D:prop><D:resourcetype><D:collection/></D:resourcetype>"
            b"</D:prop><D:status>HTTP/1.1 200 OK</D:status></D:propstat>"
            b"<D:propstat><D:prop><D:displayname/><D:getetag/></D:prop>"
            b"<D:status>HTTP/1.1 404 Not Found</D:status></D:propstat>"
            b"</D:response>"
        )
        [entry] = parse_multistatus(body)
        assert entry.status == "HTTP/1.1 200 OK"
        assert entry.displayname() is None
        assert entry.etag() is None
        assert entry.resource_types() == (dav.Collection.tag,)

    def test_response_status(self):
        body = multistatus(
            b"<D:response><D:href>/calendars/user/</D:href>"
            b"<D:status>HTTP/1.1 404 Not Found</D:status></D:response>"
        )
        [entry] = parse_multistatus(body)
        assert entry.status_code == 404
        assert entry.properties == {}

    def test_status_without_reason_phrase(self):
        body = multistatus(
            b"<D:response><D:href>/calendars/user/</D:href>"
            b"<D:propstat><D:prop><D:displayname>Home</D:displayname></D:prop>"
            b"<D:status>HTTP/1.1 200</D:status></D:propstat>"
            b"<D:propstat><D:prop><D:getetag/></D:prop>"
            b"<D:status>HTTP/1.1 404</D:status></D:propstat></D:response>"
        )
        [entry] = parse_multistatus(body)
        assert entry.status_code == 200
        assert entry.displayname() == "Home"
        assert dav.GetEtag.tag not in entry.properties

    def test_extra_href_is_ignored(self):
        body = multistatus(
            b"<D:response><D:href>/a/</D:href><D:href>/b/</D:href>"
            b"<D:status>HTTP/1.1 404 Not Found</D:status></D:response>"
        )
        [entry] = parse_multistatus(body)
        assert entry.href == "/a/"
        assert entry.status_code == 404

    def test_missing_href(self):
        body = multistatus(
            b"<D:response><D:propstat><D:prop><D:displayname>x</D:displayname>"
            b"</D:prop><D:status>HTTP/1.1 200 OK</D:status></D:propstat></D:response>"
        )
        with pytest.raises(error.ProtocolError):
            parse_multistatus(body)

    def test_missing_propstat(self):
        body = multistatus(b"<D:response><D:href>/foo/</D:href></D:response>")
        with pytest.raises(error.ProtocolError):
            parse_multistatus(body)

    def test_invalid_xml(self):
        with pytest.raises(error.DocumentParseError):
            parse_multistatus(b"<D:multistatus xmlns:D='DAV:'><D:response>")

    def test_empty_body(self):
        assert parse_multistatus(b"") == []

    def test_entry_parse(self):
        tree = etree.fromstring(
            multistatus(response("/a/", "<D:displayname>A</D:displayname>"))
        )
        entry = MultistatusEntry.parse(tree[0])
        assert entry.href == "/a/"
        assert entry.displayname() == "A"

    def test_wrong_variant(self):
        entry = MultistatusEntry(
            href="/a/", properties={dav.GetEtag.tag: DisplayName("oops")}
        )
        with pytest.raises(error.InvariantViolation):
            entry.etag()
        entry = MultistatusEntry(
            href="/a/", properties={dav.DisplayName.tag: ChangeToken('"1"')}
        )
        with pytest.raises(error.InvariantViolation):
            entry.displayname()
        entry = MultistatusEntry(
            href="/a/",
            properties={cdav.CalendarData.tag: CalendarDataProperty(text="")},
        )
        assert entry.document() is None


class TestCalDAVProtocol:
    """Test the CalDAVProtocol class."""

    def test_basic_auth(self):
        protocol = CalDAVProtocol(Credentials("user", "pass"))
        request = protocol.principal_request("https://cal.example.com/")
        expected = base64.b64encode(b"user:pass").decode("ascii")
        assert request.headers["Authorization"] == "Basic " + expected

    def test_no_auth(self):
        request = CalDAVProtocol().principal_request("https://cal.example.com/")
        assert "Authorization" not in request.headers

    def test_request_builders(self):
        protocol = CalDAVProtocol(headers={"X-Test": "yes"})

        request = protocol.principal_request("https://cal.example.com/")
        assert request.method == DAVMethod.PROPFIND
        assert request.depth == 0
        assert request.headers["X-Test"] == "yes"
        assert request.headers["Content-Type"].startswith("application/xml")

        request = protocol.calendar_list_request("https://cal.example.com/home/")
        assert request.method == DAVMethod.PROPFIND
        assert request.depth == 1

        request = protocol.todo_query_request("https://cal.example.com/home/tasks/")
        assert request.method == DAVMethod.REPORT
        assert request.depth == 1
        assert b"VTODO" in request.body

    def test_put_request(self):
        protocol = CalDAVProtocol()
        request = protocol.put_request("https://cal.example.com/1.ics", TODO_DATA)
        assert request.method == DAVMethod.PUT
        assert request.body == TODO_DATA.encode("utf-8")
        assert request.headers["Content-Type"] == "text/calendar; charset=utf-8"
        assert "If-Match" not in request.headers

        request = protocol.put_request(
            "https://cal.example.com/1.ics", TODO_DATA, etag='"1"'
        )
        assert request.headers["If-Match"] == '"1"'

    def test_check_response(self):
        protocol = CalDAVProtocol()
        put = protocol.put_request("https://cal.example.com/1.ics", TODO_DATA)
        report = protocol.todo_query_request("https://cal.example.com/tasks/")
        propfind = protocol.principal_request("https://cal.example.com/")

        ok = DAVResponse(status=204, headers={}, body=b"")
        assert protocol.check_response(put, ok) is ok

        with pytest.raises(error.PutError):
            protocol.check_response(put, DAVResponse(status=412, headers={}, body=b""))
        with pytest.raises(error.ReportError):
            protocol.check_response(report, DAVResponse(status=500, headers={}, body=b""))
        with pytest.raises(error.PropfindError):
            protocol.check_response(propfind, DAVResponse(status=404, headers={}, body=b""))
        with pytest.raises(error.AuthorizationError):
            protocol.check_response(propfind, DAVResponse(status=401, headers={}, body=b""))
        ## all of them are transport errors
        with pytest.raises(error.TransportError):
            protocol.check_response(put, DAVResponse(status=403, headers={}, body=b""))

    def test_undecodable_body(self):
        protocol = CalDAVProtocol()
        request = protocol.principal_request("https://cal.example.com/")
        with pytest.raises(error.TransportError):
            protocol.parse_multistatus(
                request, DAVResponse(status=207, headers={}, body=b"\xff\xfe<xml/>")
            )
