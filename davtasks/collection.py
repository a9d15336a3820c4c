#!/usr/bin/env python
"""
A "collection" here is what the server hands out for every calendar
object resource matched by a task query: one iCalendar document,
holding one or more VTODO components.  The classes in this file
represent the calendars, the collections fetched from them and the
tasks inside the collections.

The TaskCollection owns the parsed document.  Task objects are
views on the VTODO components in it, so mutating a task mutates
the document that is written back to the server on ``sync``.
"""
import logging
from dataclasses import dataclass
from dataclasses import field
from datetime import datetime
from typing import TYPE_CHECKING
from typing import Dict
from typing import Iterator
from typing import List
from typing import Optional
from typing import Union

from requests.structures import CaseInsensitiveDict

from davtasks.lib import error
from davtasks.lib.url import URL
from davtasks.lib.vcal import VCalendar
from davtasks.lib.vcal import VTodo
from davtasks.lib.vcal import format_utc_timestamp
from davtasks.lib.vcal import parse_utc_timestamp
from davtasks.lib.vcal import unescape_text
from davtasks.lib.vcal import utc_tz

if TYPE_CHECKING:
    from davtasks.davclient import DAVClient

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Calendar:
    """
    A calendar on the server that accepts tasks, as found by the
    discovery.  Two Calendar objects are the same calendar if they
    have the same URL.
    """

    url: URL
    etag: str = field(compare=False)
    name: str = field(compare=False)

    def __str__(self) -> str:
        return "%s (%s)" % (self.name, self.url)


@dataclass(frozen=True)
class TaskRef:
    """
    Points out a task in a TaskList: the position of the collection
    in the list, and the position of the task in the collection.  It
    holds no reference to the task itself; looking up a ref that no
    longer fits the list gives a NotFoundError.
    """

    collection_index: int
    task_index: int


class Task:
    """
    One VTODO component.  The summary is mandatory (a document with a
    task without it won't parse), the completion time and the
    description are optional.  All other properties of the component
    are left untouched.
    """

    def __init__(self, todo: VTodo, collection_index: int, task_index: int) -> None:
        self.todo = todo
        self.ref = TaskRef(collection_index, task_index)

    def __repr__(self) -> str:
        return "Task(%r, %r, done=%s)" % (self.summary, self.ref, self.is_done)

    @property
    def summary(self) -> str:
        return unescape_text(self.todo.find_property_value("SUMMARY") or "")

    @property
    def description(self) -> Optional[str]:
        value = self.todo.find_property_value("DESCRIPTION")
        if value is None:
            return None
        return unescape_text(value)

    @property
    def completed(self) -> Optional[datetime]:
        value = self.todo.find_property_value("COMPLETED")
        if value is None:
            return None
        return parse_utc_timestamp(value)

    @property
    def is_done(self) -> bool:
        return self.completed is not None

    def mark_done(self, ts: Optional[datetime] = None) -> None:
        """
        Marks the task as completed at the given time (default: now).
        Only the in-memory document is changed, ``sync`` the owning
        collection to save it.
        """
        if ts is None:
            ts = datetime.now(utc_tz)
        prop = self.todo.find_or_insert_property("COMPLETED")
        ## any parameters (TZID) are dropped, the value is always UTC
        prop.key = "COMPLETED"
        prop.value = format_utc_timestamp(ts)
        status = self.todo.find_property("STATUS")
        if status is not None:
            status.value = "COMPLETED"

    def mark_undone(self) -> None:
        self.todo.delete_property("COMPLETED")
        status = self.todo.find_property("STATUS")
        if status is not None:
            status.value = "NEEDS-ACTION"

    def toggle(self, ts: Optional[datetime] = None) -> None:
        if self.is_done:
            self.mark_undone()
        else:
            self.mark_done(ts)


class TaskCollection:
    """
    The parsed contents of one calendar object resource.

    ``etag`` is the one the document had when it was fetched, it's
    left as it is when tasks are modified locally, and replaced by
    whatever the server says after a successful ``sync``.

    If the server didn't send any calendar data, or sent something
    that couldn't be parsed, ``document`` is None, the task list is
    empty and ``load_error`` tells what went wrong.  Such a collection
    can't be synced.
    """

    def __init__(
        self,
        url: Union[str, URL],
        etag: Optional[str] = None,
        index: int = 0,
        document: Optional[VCalendar] = None,
        load_error: Optional[error.DAVError] = None,
    ) -> None:
        self.url = URL.objectify(url)
        self.etag = etag
        self.index = index
        self.document = document
        self.load_error = load_error
        todos = document.todos if document is not None else []
        self.tasks = [Task(todo, index, i) for (i, todo) in enumerate(todos)]

    def __repr__(self) -> str:
        return "TaskCollection(%s, etag=%r, %i tasks)" % (
            self.url,
            self.etag,
            len(self.tasks),
        )

    def to_ical(self) -> str:
        if self.document is None:
            raise error.ProtocolError(
                url=str(self.url),
                reason="no calendar data was loaded: %s" % self.load_error,
            )
        return self.document.to_ical()

    def sync(self, client: "DAVClient", conditional: bool = False) -> None:
        """
        Writes the document back to the server.

        By default this is an unconditional PUT, overwriting whatever
        is on the server, including changes done by others since the
        fetch.  With ``conditional=True`` the etag from the fetch is
        sent as If-Match, and the server will refuse the write if the
        resource has changed.

        The request is not retried.  If it fails, the local changes
        are still there and ``sync`` may be called again.
        """
        data = self.to_ical()
        if conditional and not self.etag:
            raise error.ProtocolError(
                url=str(self.url), reason="conditional sync without an etag"
            )
        if not conditional:
            log.debug("unconditional write to %s", self.url)
        response = client.put(
            self.url, data, etag=self.etag if conditional else None
        )
        self.etag = CaseInsensitiveDict(response.headers).get("ETag")
        log.info("synced %s, new etag %r", self.url, self.etag)


class TaskList:
    """
    All collections fetched by one task query, in the order the server
    listed them.  Resolves TaskRefs.
    """

    def __init__(self, collections: Optional[List[TaskCollection]] = None) -> None:
        self.collections = collections or []

    def __len__(self) -> int:
        return len(self.collections)

    def __iter__(self) -> Iterator[TaskCollection]:
        return iter(self.collections)

    def collection(self, index: int) -> TaskCollection:
        if not 0 <= index < len(self.collections):
            raise error.NotFoundError(reason="no collection with index %i" % index)
        return self.collections[index]

    def task(self, ref: TaskRef) -> Task:
        collection = self.collection(ref.collection_index)
        if not 0 <= ref.task_index < len(collection.tasks):
            raise error.NotFoundError(
                url=str(collection.url), reason="no task at %r" % (ref,)
            )
        return collection.tasks[ref.task_index]

    def tasks(self) -> List[Task]:
        return [task for collection in self.collections for task in collection.tasks]

    def sorted_by_summary(self) -> List[Task]:
        return sorted(self.tasks(), key=lambda t: t.summary)


@dataclass
class FetchResult:
    """
    The outcome of fetching tasks from several calendars.  A calendar
    that failed ends up in ``errors``, it doesn't stop the others.
    """

    collections: Dict[Calendar, TaskList] = field(default_factory=dict)
    errors: Dict[Calendar, error.DAVError] = field(default_factory=dict)

    def tasks(self) -> List[Task]:
        return [task for task_list in self.collections.values() for task in task_list.tasks()]


def fetch_task_collections(client: "DAVClient", calendar: Calendar) -> TaskList:
    """
    Runs a calendar-query REPORT on the calendar, asking for all
    objects holding a VTODO.

    Returns:
        TaskList, with one TaskCollection per object found
    """
    entries = client.multistatus(client.protocol.todo_query_request(str(calendar.url)))
    collections: List[TaskCollection] = []
    for entry in entries:
        if entry.status_code == 404:
            log.debug("skipping %s, status %s", entry.href, entry.status)
            continue
        index = len(collections)
        url = calendar.url.join(entry.href)
        calendar_data = entry.calendar_data()
        if calendar_data is None:
            log.warning("no calendar-data for %s, treating it as empty", url)
            collections.append(
                TaskCollection(
                    url,
                    entry.etag(),
                    index,
                    load_error=error.ProtocolError(
                        url=str(url), reason="calendar-data missing from response"
                    ),
                )
            )
            continue
        if calendar_data.document is None:
            log.warning(
                "unparseable calendar-data for %s, treating it as empty: %s",
                url,
                calendar_data.parse_error,
            )
        collections.append(
            TaskCollection(
                url,
                entry.etag(),
                index,
                document=calendar_data.document,
                load_error=calendar_data.parse_error,
            )
        )
    log.info("fetched %i collection(s) from %s", len(collections), calendar)
    return TaskList(collections)
