"""
Pure functions for parsing CalDAV XML responses.

All functions in this module are pure - they take XML bytes in and return
structured data out, with no side effects or I/O.
"""

import logging
from typing import Dict, List, Optional, Tuple, Union

from lxml import etree
from lxml.etree import _Element

from davtasks.elements import cdav, dav
from davtasks.lib import error
from davtasks.lib.vcal import parse_vcalendar

from .types import (
    CalendarDataProperty,
    ChangeToken,
    DisplayName,
    HrefProperty,
    MultistatusEntry,
    PropertyValue,
    ResourceType,
    SupportedComponents,
    Unrecognized,
    status_code,
)

log = logging.getLogger(__name__)

## Properties whose value is a single DAV:href
HREF_PROPERTIES = (
    dav.CurrentUserPrincipal.tag,
    cdav.CalendarHomeSet.tag,
)


def parse_multistatus(
    body: bytes,
    huge_tree: bool = False,
) -> List[MultistatusEntry]:
    """
    Parse a 207 Multi-Status response body.

    Args:
        body: Raw XML response bytes
        huge_tree: Allow parsing very large XML documents

    Returns:
        One MultistatusEntry per DAV:response element

    Raises:
        DocumentParseError: If body is not valid XML
        ProtocolError: If a response element lacks href or propstat
    """
    if not body:
        return []
    if isinstance(body, str):
        body = body.encode("utf-8")
    parser = etree.XMLParser(remove_blank_text=True, huge_tree=huge_tree)
    try:
        tree = etree.fromstring(body, parser)
    except etree.XMLSyntaxError as e:
        raise error.DocumentParseError(reason="invalid XML in response: %s" % e)

    entries: List[MultistatusEntry] = []
    for elem in _strip_to_multistatus(tree):
        if elem.tag != dav.Response.tag:
            log.debug("ignoring %s in multistatus", elem.tag)
            continue
        entries.append(parse_response(elem))
    return entries


def parse_response(response: _Element) -> MultistatusEntry:
    """
    Parse a single DAV:response element.

    One response should contain one href, and either some propstats
    or a status.  Properties found in a propstat with a 404 status
    are the ones the server doesn't have, and they are left out.
    """
    error.assert_(response.tag == dav.Response.tag, "not a DAV:response")
    href, propstats, status = _parse_response_element(response)
    if href is None:
        raise error.ProtocolError(reason="Element doesn't have an href")

    props = [
        (propstat_status, prop)
        for (propstat_status, prop) in propstats
        if prop is not None
    ]
    if not props and status is None:
        raise error.ProtocolError(
            url=href, reason="Failed to parse XML response: Missing propstat/prop field"
        )

    properties: Dict[str, PropertyValue] = {}
    for propstat_status, prop in props:
        if status_code(propstat_status) == 404:
            continue
        for child in prop:
            if not isinstance(child.tag, str):
                ## comments and processing instructions
                continue
            properties[child.tag] = _parse_property(child)

    if status is None:
        status = _summarize_propstat_status([x[0] for x in propstats])

    return MultistatusEntry(href=href, status=status, properties=properties)


# Helper functions


def _strip_to_multistatus(tree: _Element) -> Union[_Element, List[_Element]]:
    """
    Strip outer elements to get to the multistatus content.

    The general format is:
        <xml><multistatus>
            <response>...</response>
            <response>...</response>
        </multistatus></xml>

    But sometimes multistatus and/or xml element is missing.
    Returns the element(s) containing responses.
    """
    if tree.tag == "xml" and len(tree) > 0 and tree[0].tag == dav.MultiStatus.tag:
        return tree[0]
    if tree.tag == dav.MultiStatus.tag:
        return tree
    return [tree]


def _text(elem: _Element) -> str:
    return (elem.text or "").strip()


def _parse_response_element(
    response: _Element,
) -> Tuple[Optional[str], List[Tuple[Optional[str], Optional[_Element]]], Optional[str]]:
    """
    Returns:
        Tuple of (href, [(propstat status, prop element)], response status)
    """
    status: Optional[str] = None
    href: Optional[str] = None
    propstats: List[Tuple[Optional[str], Optional[_Element]]] = []

    for elem in response:
        if elem.tag == dav.Status.tag:
            status = _text(elem)
        elif elem.tag == dav.Href.tag:
            if href is not None:
                error.weirdness(
                    "more than one href in response, using the first", elem
                )
                continue
            href = _text(elem) or None
        elif elem.tag == dav.PropStat.tag:
            propstat_status = elem.find(dav.Status.tag)
            propstats.append(
                (
                    _text(propstat_status) if propstat_status is not None else None,
                    elem.find(dav.Prop.tag),
                )
            )
        elif isinstance(elem.tag, str):
            error.weirdness("unexpected element found in response", elem)

    return (href, propstats, status)


def _summarize_propstat_status(statuses: List[Optional[str]]) -> Optional[str]:
    """
    A response may hold one propstat for the properties found and one
    for those that weren't.  The status of the entry is the first one
    that isn't a 404, if any.
    """
    found = [x for x in statuses if x]
    for status in found:
        if status_code(status) != 404:
            return status
    if found:
        return found[0]
    return None


def _parse_property(elem: _Element) -> PropertyValue:
    tag = elem.tag

    if tag == dav.GetEtag.tag:
        return ChangeToken(_text(elem))

    if tag == cdav.CalendarData.tag:
        text = elem.text or ""
        if not text.strip():
            return CalendarDataProperty(
                text=text,
                parse_error=error.DocumentParseError(reason="empty calendar-data"),
            )
        try:
            return CalendarDataProperty(text=text, document=parse_vcalendar(text))
        except (error.DocumentParseError, error.TimestampError) as e:
            log.warning("could not parse calendar-data: %s", e)
            return CalendarDataProperty(text=text, parse_error=e)

    if tag == dav.DisplayName.tag:
        return DisplayName(_text(elem))

    if tag == dav.ResourceType.tag:
        return ResourceType(tuple(x.tag for x in elem if isinstance(x.tag, str)))

    if tag == cdav.SupportedCalendarComponentSet.tag:
        names = []
        for comp in elem:
            if comp.tag != cdav.Comp.tag:
                continue
            name = comp.get("name")
            if name:
                names.append(name.upper())
            else:
                error.weirdness("component without name in component set", comp)
        return SupportedComponents(tuple(names))

    if tag in HREF_PROPERTIES:
        for child in elem:
            if child.tag == dav.Href.tag and _text(child):
                return HrefProperty(_text(child))
        return HrefProperty(None)

    log.debug("unrecognized property %s", tag)
    return Unrecognized(tag)
