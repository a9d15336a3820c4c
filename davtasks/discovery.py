#!/usr/bin/env python
"""
Locating the task calendars of a user.

Starting from the bookmark URL (the URL in the configuration), the
discovery runs three requests in strict sequence:

1. PROPFIND for the current-user-principal on the bookmark URL
2. PROPFIND for the calendar-home-set on the principal URL
3. Depth 1 PROPFIND on the home set, listing the collections in it

Only collections that are calendars, and that accept VTODO
components, are returned.
"""
import logging
from typing import TYPE_CHECKING
from typing import List
from typing import Optional
from typing import Union

from davtasks.collection import Calendar
from davtasks.elements import cdav
from davtasks.elements import dav
from davtasks.lib import error
from davtasks.lib.url import URL
from davtasks.protocol.types import DAVRequest
from davtasks.protocol.types import MultistatusEntry

if TYPE_CHECKING:
    from davtasks.davclient import DAVClient

log = logging.getLogger(__name__)


def _single_entry(entries: List[MultistatusEntry], url: URL) -> MultistatusEntry:
    """
    A depth 0 PROPFIND should give exactly one response.  Some servers
    will throw in more; the first one not reporting a 404 is used.
    """
    if not entries:
        raise error.ProtocolError(url=str(url), reason="empty multistatus response")
    if len(entries) > 1:
        error.weirdness("depth 0 PROPFIND returned %i responses" % len(entries))
    for entry in entries:
        if entry.status_code != 404:
            return entry
    return entries[0]


def _find_href_property(
    client: "DAVClient", url: URL, request: DAVRequest, tag: str
) -> URL:
    entry = _single_entry(client.multistatus(request), url)
    if entry.status_code is not None and entry.status_code != 200:
        raise error.ProtocolError(
            url=str(url), reason="unexpected status %r for %s" % (entry.status, tag)
        )
    href = entry.href_property(tag)
    if not href:
        raise error.ProtocolError(url=str(url), reason="property %s not found" % tag)
    return url.join(href)


def find_principal_url(client: "DAVClient", url: Union[str, URL]) -> URL:
    """
    Finds the principal URL of the logged-in user, resolved against
    the given bookmark URL.

    Raises ProtocolError if the server doesn't tell.
    """
    url = URL.objectify(url)
    principal_url = _find_href_property(
        client,
        url,
        client.protocol.principal_request(str(url)),
        dav.CurrentUserPrincipal.tag,
    )
    log.debug("principal url: %s", principal_url)
    return principal_url


def find_calendar_home_set(client: "DAVClient", principal_url: Union[str, URL]) -> URL:
    """
    Finds the URL of the collection holding the calendars of the
    principal.
    """
    principal_url = URL.objectify(principal_url)
    home_set_url = _find_href_property(
        client,
        principal_url,
        client.protocol.home_set_request(str(principal_url)),
        cdav.CalendarHomeSet.tag,
    )
    log.debug("calendar home set url: %s", home_set_url)
    return home_set_url


def calendar_from_entry(
    entry: MultistatusEntry, base_url: Union[str, URL]
) -> Optional[Calendar]:
    """
    Judges one entry of the home set listing.  Returns None for
    entries that should be skipped silently: the ones reported as not
    found, those that aren't calendars, and calendars that don't take
    tasks.  An entry with any other unexpected status, or a task
    calendar lacking an etag or a display name, is a ProtocolError.
    """
    status = entry.status_code
    if status == 404:
        log.debug("skipping %s, status %s", entry.href, entry.status)
        return None
    if status is not None and status != 200:
        raise error.ProtocolError(
            url=entry.href, reason="unexpected status %r" % entry.status
        )

    if cdav.Calendar.tag not in (entry.resource_types() or ()):
        log.debug("skipping %s, not a calendar", entry.href)
        return None

    ## no component set means that all components are accepted
    components = entry.supported_components()
    if components is not None and "VTODO" not in components:
        log.debug("skipping %s, calendar does not support tasks", entry.href)
        return None

    etag = entry.etag()
    if not etag:
        raise error.ProtocolError(url=entry.href, reason="calendar has no getetag")
    name = entry.displayname()
    if name is None:
        raise error.ProtocolError(url=entry.href, reason="calendar has no displayname")

    return Calendar(url=URL.objectify(base_url).join(entry.href), etag=etag, name=name)


def find_calendars(client: "DAVClient", url: Union[str, URL]) -> List[Calendar]:
    """
    Runs the full discovery sequence from the bookmark URL.

    Returns:
        the task calendars, in the order the server listed them
    """
    url = URL.objectify(url)
    home_set_url = find_calendar_home_set(client, find_principal_url(client, url))
    entries = client.multistatus(
        client.protocol.calendar_list_request(str(home_set_url))
    )

    calendars = []
    for entry in entries:
        calendar = calendar_from_entry(entry, url)
        if calendar is not None:
            calendars.append(calendar)
    log.info(
        "found %i task calendar(s) out of %i entries in %s",
        len(calendars),
        len(entries),
        home_set_url,
    )
    return calendars
