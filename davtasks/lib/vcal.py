#!/usr/bin/env python
"""
Parsing and serializing of calendar-object (iCalendar) documents
holding tasks.

The parser is a small state machine over the logical (unfolded)
lines of the document.  ``transition`` is a pure function taking the
current ``ParserState`` and one ``ContentLine``, returning the next
state and an ``Effect`` telling ``parse_vcalendar`` what to do with
the line.  Fatal grammar violations are raised from ``transition``
as DocumentParseError.

Only VTODO components are interpreted.  Everything else - calendar
level properties, task properties we don't care about, VTIMEZONE,
VEVENT, VALARM and other nested blocks - is kept verbatim, so that a
document can be written back to the server without loss.
"""
import logging
import re
from dataclasses import dataclass
from dataclasses import field
from dataclasses import replace
from datetime import datetime
from datetime import timezone
from enum import Enum
from typing import List
from typing import Optional
from typing import Tuple
from typing import Union

from icalendar import Todo
from icalendar.parser import Contentline

from davtasks.lib.error import DocumentParseError
from davtasks.lib.error import TimestampError
from davtasks.lib.python_utilities import to_normal_str

log = logging.getLogger(__name__)

utc_tz = timezone.utc

TIMESTAMP_FORMAT = "%Y%m%dT%H%M%SZ"
_timestamp_re = re.compile(r"^\d{8}T\d{6}Z$")

## Properties of a VTODO that the parser interprets
TASK_FIELDS = ("SUMMARY", "COMPLETED", "DESCRIPTION")


def fold_line(line: str) -> str:
    """
    Folds a content line so that no physical line exceeds 75 octets.
    The result has no trailing CRLF.
    """
    return Contentline(line).to_ical().decode("utf-8")


def unescape_text(value: str) -> str:
    r"""
    Resolves the backslash escapes of a TEXT value (\\ \; \, \n),
    by letting icalendar decode it as the value of a SUMMARY.
    """
    todo = Todo.from_ical("BEGIN:VTODO\r\nSUMMARY:%s\r\nEND:VTODO\r\n" % value)
    return str(todo["SUMMARY"])

def parse_utc_timestamp(value: str) -> datetime:
    """
    Parses a "date with UTC time" on the form YYYYMMDDTHHMMSSZ, ref
    https://tools.ietf.org/html/rfc5545#section-3.3.5
    """
    if not isinstance(value, str) or not _timestamp_re.match(value):
        raise TimestampError(reason="malformed UTC timestamp %r" % (value,))
    try:
        return datetime.strptime(value, TIMESTAMP_FORMAT).replace(tzinfo=utc_tz)
    except ValueError as e:
        raise TimestampError(reason="malformed UTC timestamp %r: %s" % (value, e))


def format_utc_timestamp(ts: datetime) -> str:
    """coerce datetimes to UTC (assume localtime if nothing is given)"""
    return ts.astimezone(utc_tz).strftime(TIMESTAMP_FORMAT)


@dataclass
class ContentLine:
    """
    One logical line, ``key:value``.  The key is kept as found,
    including any parameters (``DUE;VALUE=DATE``); ``name`` is the
    upper-cased property name without parameters.
    """

    key: str
    value: str

    @classmethod
    def parse(cls, line: str) -> "ContentLine":
        key, sep, value = line.partition(":")
        if not sep:
            raise DocumentParseError(reason="Invalid iCalendar line", line=line)
        return cls(key, value)

    @property
    def name(self) -> str:
        return self.key.split(";", 1)[0].strip().upper()

    def to_ical(self) -> str:
        return "%s:%s" % (self.key, self.value)

    def __str__(self) -> str:
        return self.to_ical()


def unfold(text: Union[str, bytes]) -> List[str]:
    """
    Splits the document into logical lines, undoing the line folding
    described in RFC5545 section 3.1.  Blank lines are dropped.
    """
    lines: List[str] = []
    for raw in to_normal_str(text).split("\n"):
        raw = raw.rstrip("\r")
        if raw[:1] in (" ", "\t"):
            if not lines:
                raise DocumentParseError(
                    reason="continuation line without a preceding line", line=raw
                )
            lines[-1] += raw[1:]
        elif raw.strip():
            lines.append(raw)
    return lines


@dataclass
class Component:
    """
    A block we don't interpret (VTIMEZONE, VEVENT, VALARM, ...), kept
    as the raw lines from BEGIN to the matching END.
    """

    name: str
    lines: List[str] = field(default_factory=list)

    def to_ical_lines(self) -> List[str]:
        return list(self.lines)


@dataclass
class VTodo:
    """
    A task component as an ordered list of properties, plus any nested
    blocks (typically VALARM).  Properties are addressed by name;
    the list may contain the same name several times, but the
    accessors below operate on the first occurrence.
    """

    properties: List[ContentLine] = field(default_factory=list)
    subcomponents: List[Component] = field(default_factory=list)

    def find_property(self, name: str) -> Optional[ContentLine]:
        name = name.upper()
        for prop in self.properties:
            if prop.name == name:
                return prop
        return None

    def find_property_value(self, name: str) -> Optional[str]:
        prop = self.find_property(name)
        if prop is None:
            return None
        return prop.value

    def find_or_insert_property(self, name: str) -> ContentLine:
        prop = self.find_property(name)
        if prop is None:
            prop = ContentLine(name.upper(), "")
            self.properties.append(prop)
        return prop

    def delete_property(self, name: str) -> None:
        name = name.upper()
        self.properties = [x for x in self.properties if x.name != name]

    def to_ical_lines(self) -> List[str]:
        lines = ["BEGIN:VTODO"]
        lines.extend(x.to_ical() for x in self.properties)
        for sub in self.subcomponents:
            lines.extend(sub.to_ical_lines())
        lines.append("END:VTODO")
        return lines


@dataclass
class VCalendar:
    """A parsed calendar-object document"""

    prodid: str = "-//davtasks//davtasks//EN"
    properties: List[ContentLine] = field(default_factory=list)
    components: List[Union[VTodo, Component]] = field(default_factory=list)

    @property
    def todos(self) -> List[VTodo]:
        return [x for x in self.components if isinstance(x, VTodo)]

    def to_ical(self) -> str:
        """
        Serializes the document.  Lines are terminated with CRLF and
        folded at 75 octets, as required by RFC5545.
        """
        lines = ["BEGIN:VCALENDAR", "VERSION:2.0", "PRODID:%s" % self.prodid]
        lines.extend(x.to_ical() for x in self.properties)
        for component in self.components:
            lines.extend(component.to_ical_lines())
        lines.append("END:VCALENDAR")
        return "".join(fold_line(x) + "\r\n" for x in lines)


class Phase(Enum):
    ## the preamble, in the order it's required
    BEGIN = "begin"
    VERSION = "version"
    PRODID = "prodid"
    ## top level inside the document
    CALENDAR = "calendar"
    ## inside a VTODO
    TASK = "task"
    DONE = "done"


@dataclass(frozen=True)
class ParserState:
    phase: Phase = Phase.BEGIN
    ## names of the unrecognized blocks currently open, innermost last
    blocks: Tuple[str, ...] = ()


class Effect(Enum):
    PREAMBLE = "preamble"
    CALENDAR_PROPERTY = "calendar-property"
    START_TASK = "start-task"
    TASK_FIELD = "task-field"
    UNRECOGNIZED_PROPERTY = "unrecognized-property"
    FINISH_TASK = "finish-task"
    UNRECOGNIZED_BLOCK = "unrecognized-block"
    BLOCK_CONTENT = "block-content"
    BLOCK_END = "block-end"
    FINISH = "finish"


def _fail(reason: str, line: ContentLine) -> DocumentParseError:
    return DocumentParseError(reason=reason, line=line.to_ical())


def transition(state: ParserState, line: ContentLine) -> Tuple[ParserState, Effect]:
    name = line.name
    component = line.value.strip().upper()
    phase = state.phase

    if phase is Phase.DONE:
        raise _fail("unexpected trailing content after END:VCALENDAR", line)

    if phase is Phase.BEGIN:
        if name == "BEGIN" and component == "VCALENDAR":
            return ParserState(Phase.VERSION), Effect.PREAMBLE
        raise _fail("expected BEGIN:VCALENDAR", line)
    if phase is Phase.VERSION:
        if name == "VERSION" and line.value.strip() == "2.0":
            return ParserState(Phase.PRODID), Effect.PREAMBLE
        raise _fail("expected VERSION:2.0", line)
    if phase is Phase.PRODID:
        if name == "PRODID":
            return ParserState(Phase.CALENDAR), Effect.PREAMBLE
        raise _fail("expected PRODID", line)

    if state.blocks:
        if name == "BEGIN":
            return replace(state, blocks=state.blocks + (component,)), Effect.BLOCK_CONTENT
        if name == "END":
            if component != state.blocks[-1]:
                raise _fail("END does not match BEGIN:%s" % state.blocks[-1], line)
            blocks = state.blocks[:-1]
            if blocks:
                return replace(state, blocks=blocks), Effect.BLOCK_CONTENT
            return replace(state, blocks=blocks), Effect.BLOCK_END
        return state, Effect.BLOCK_CONTENT

    if phase is Phase.CALENDAR:
        if name == "BEGIN":
            if component == "VTODO":
                return ParserState(Phase.TASK), Effect.START_TASK
            if component == "VCALENDAR":
                raise _fail("nested VCALENDAR", line)
            return ParserState(Phase.CALENDAR, (component,)), Effect.UNRECOGNIZED_BLOCK
        if name == "END":
            if component == "VCALENDAR":
                return ParserState(Phase.DONE), Effect.FINISH
            raise _fail("unexpected END", line)
        return state, Effect.CALENDAR_PROPERTY

    ## Phase.TASK
    if name == "BEGIN":
        if component in ("VTODO", "VCALENDAR"):
            raise _fail("BEGIN:%s inside a VTODO" % component, line)
        return ParserState(Phase.TASK, (component,)), Effect.UNRECOGNIZED_BLOCK
    if name == "END":
        if component == "VTODO":
            return ParserState(Phase.CALENDAR), Effect.FINISH_TASK
        raise _fail("unexpected END inside a VTODO", line)
    if name in TASK_FIELDS:
        return state, Effect.TASK_FIELD
    return state, Effect.UNRECOGNIZED_PROPERTY


class TodoBuilder:
    def __init__(self) -> None:
        self.todo = VTodo()
        self.summary: Optional[str] = None

    def consume_field(self, line: ContentLine) -> None:
        name = line.name
        if name == "SUMMARY":
            self.summary = line.value
        elif name == "COMPLETED":
            ## validate now, so that Task.completed never fails later on
            parse_utc_timestamp(line.value)
        prop = self.todo.find_property(name)
        if prop is None:
            self.todo.properties.append(line)
        else:
            prop.key = line.key
            prop.value = line.value

    def keep(self, line: ContentLine) -> None:
        self.todo.properties.append(line)

    def build(self, end_line: ContentLine) -> VTodo:
        if self.summary is None:
            raise _fail("Missing SUMMARY in VTODO", end_line)
        return self.todo


def parse_vcalendar(text: Union[str, bytes]) -> VCalendar:
    """
    Parses a calendar-object document.

    Raises DocumentParseError on grammar violations and TimestampError
    on a malformed COMPLETED value.
    """
    state = ParserState()
    calendar = VCalendar()
    builder: Optional[TodoBuilder] = None
    block: Optional[Component] = None

    for raw in unfold(text):
        line = ContentLine.parse(raw)
        state, effect = transition(state, line)

        if effect is Effect.PREAMBLE:
            if line.name == "PRODID":
                calendar.prodid = line.value
        elif effect is Effect.CALENDAR_PROPERTY:
            calendar.properties.append(line)
        elif effect is Effect.START_TASK:
            builder = TodoBuilder()
        elif effect is Effect.TASK_FIELD:
            builder.consume_field(line)
        elif effect is Effect.UNRECOGNIZED_PROPERTY:
            log.debug("Unhandled task line kept as is: %s", raw)
            builder.keep(line)
        elif effect is Effect.FINISH_TASK:
            calendar.components.append(builder.build(line))
            builder = None
        elif effect is Effect.UNRECOGNIZED_BLOCK:
            log.debug("Unhandled block %s kept as is", line.value)
            block = Component(line.value.strip().upper(), [raw])
        elif effect is Effect.BLOCK_CONTENT:
            block.lines.append(raw)
        elif effect is Effect.BLOCK_END:
            block.lines.append(raw)
            if state.phase is Phase.TASK:
                builder.todo.subcomponents.append(block)
            else:
                calendar.components.append(block)
            block = None

    if state.phase is not Phase.DONE:
        raise DocumentParseError(reason="unexpected end of document")
    return calendar
