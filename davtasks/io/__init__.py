"""
I/O layer for executing the requests built by the protocol layer.

The protocol layer never does any I/O itself.  Anything with an
``execute(request) -> response`` method and a ``close()`` method will
do as a transport, this is how the tests swap in a mock server.
"""

from .base import SyncIOProtocol
from .sync import SyncIO

__all__ = [
    "SyncIOProtocol",
    "SyncIO",
]
