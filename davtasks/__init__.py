#!/usr/bin/env python
import logging

__version__ = "0.3.0"

from .davclient import DAVClient
from .davclient import get_davclient
from .collection import Calendar
from .collection import Task
from .collection import TaskCollection
from .collection import TaskList
from .collection import TaskRef

## We should consider if the NullHandler-logic below is needed or not, and
## if there are better alternatives?
# Silence notification of no default logging handler
log = logging.getLogger("davtasks")


class NullHandler(logging.Handler):
    def emit(self, record) -> None:
        pass


log.addHandler(NullHandler())

__all__ = [
    "__version__",
    "DAVClient",
    "get_davclient",
    "Calendar",
    "Task",
    "TaskCollection",
    "TaskList",
    "TaskRef",
]
