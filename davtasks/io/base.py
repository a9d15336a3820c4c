"""
The interface between the DAVClient and whatever carries its requests.
"""

from typing import Protocol, runtime_checkable

from davtasks.protocol.types import DAVRequest, DAVResponse


@runtime_checkable
class SyncIOProtocol(Protocol):
    """
    A transport takes a DAVRequest, sends it, and blocks until the
    answer is there.

    Every HTTP status counts as an answer, judging it is left to the
    protocol layer.  Only a failure to get an answer at all (refused
    connection, timeout, TLS trouble) is raised, as TransportError.
    Nothing is retried.
    """

    def execute(self, request: DAVRequest) -> DAVResponse:
        ...

    def close(self) -> None:
        """Releases the connection(s), if any."""
        ...
