"""
Pure functions for building CalDAV XML request bodies.

All functions in this module are pure - they take data in and return XML out,
with no side effects or I/O.
"""
from typing import List
from typing import Optional

from davtasks.elements import cdav
from davtasks.elements import dav
from davtasks.elements.base import BaseElement


def build_propfind_body(
    props: Optional[List[BaseElement]] = None,
) -> bytes:
    """
    Build PROPFIND request body XML.

    Args:
        props: Property elements to retrieve.  If None, returns a
               minimal propfind.

    Returns:
        UTF-8 encoded XML bytes
    """
    propfind = dav.Propfind() + (dav.Prop() + (props or []))
    return propfind.tostring()


def build_principal_propfind_body() -> bytes:
    """PROPFIND body asking for the current user principal"""
    return build_propfind_body([dav.CurrentUserPrincipal()])


def build_home_set_propfind_body() -> bytes:
    """PROPFIND body asking a principal for its calendar home set"""
    return build_propfind_body([cdav.CalendarHomeSet()])


def build_calendar_list_body() -> bytes:
    """
    PROPFIND body for listing the collections in a calendar home set,
    with the properties needed to tell the task calendars apart from
    the rest.
    """
    return build_propfind_body(
        [
            dav.GetEtag(),
            dav.DisplayName(),
            dav.ResourceType(),
            cdav.SupportedCalendarComponentSet(),
        ]
    )


def build_calendar_query_body(
    comp_type: str = "VTODO",
    props: Optional[List[BaseElement]] = None,
) -> bytes:
    """
    Build calendar-query REPORT request body.

    Asks for the etag and the calendar data of every calendar object
    holding a component of the given type.

    Args:
        comp_type: Component type filter name (VTODO, VEVENT, VJOURNAL)
        props: Additional properties to include

    Returns:
        UTF-8 encoded XML bytes
    """
    props_list: List[BaseElement] = [dav.GetEtag(), cdav.CalendarData()]
    if props:
        props_list.extend(props)
    prop = dav.Prop() + props_list

    vcalendar = cdav.CompFilter("VCALENDAR") + cdav.CompFilter(comp_type)
    filter_elem = cdav.Filter() + vcalendar
    root = cdav.CalendarQuery() + [prop, filter_elem]

    return root.tostring()
