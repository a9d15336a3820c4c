#!/usr/bin/env python
import logging
from collections import defaultdict
from typing import Dict
from typing import Optional

from davtasks import __version__

debug_dump_communication = False
try:
    import os

    ## Environmental variables prepended with "PYTHON_DAVTASKS" are used for debug purposes,
    ## environmental variables prepended with "DAVTASKS_" are for connection parameters
    debug_dump_communication = os.environ.get("PYTHON_DAVTASKS_COMMDUMP", False)
    ## one of DEBUG_PDB, DEBUG, DEVELOPMENT, PRODUCTION
    debugmode = os.environ["PYTHON_DAVTASKS_DEBUGMODE"]
except KeyError:
    if "dev" in __version__:
        debugmode = "DEVELOPMENT"
    else:
        debugmode = "PRODUCTION"

log = logging.getLogger("davtasks")
if debugmode.startswith("DEBUG"):
    log.setLevel(logging.DEBUG)
else:
    log.setLevel(logging.WARNING)


def errmsg(r) -> str:
    """Utility for formatting a an error response to an error string"""
    return "%s %s\n\n%s" % (r.status, r.reason, r.body)


def weirdness(*reasons):
    from davtasks.lib.debug import xmlstring

    reason = " : ".join([xmlstring(x) for x in reasons])
    log.warning(f"Deviation from expectations found: {reason}")
    if debugmode == "DEBUG_PDB":
        log.error(f"Dropping into debugger due to {reason}")
        import pdb

        pdb.set_trace()


def assert_(condition: object, reason: Optional[str] = None) -> None:
    """
    Internal consistency check.  Violations are logged in production
    mode and raised as InvariantViolation otherwise.
    """
    if condition:
        return
    if debugmode == "PRODUCTION":
        log.error(
            "Deviation from expectations found: %s.  %s"
            % (reason or "assertion failed", ERR_FRAGMENT),
            exc_info=True,
        )
    elif debugmode == "DEBUG_PDB":
        log.error("Deviation from expectations found.  Dropping into debugger")
        import pdb

        pdb.set_trace()
    else:
        raise InvariantViolation(reason=reason)


ERR_FRAGMENT: str = "Please consider raising an issue on the davtasks issue tracker, include this error and the traceback (if any) and tell what server you are using"


class DAVError(Exception):
    url: Optional[str] = None
    reason: str = "no reason"

    def __init__(self, url: Optional[str] = None, reason: Optional[str] = None) -> None:
        if url:
            self.url = str(url)
        if reason:
            self.reason = reason

    def __str__(self) -> str:
        return "%s at '%s', reason %s" % (
            self.__class__.__name__,
            self.url,
            self.reason,
        )


class TransportError(DAVError):
    """
    The request could not be carried out: connection failure, a
    non-success HTTP status or a response body that could not be
    decoded.  The library never retries; the caller decides.
    """

    pass


class AuthorizationError(TransportError):
    """
    The client encountered an HTTP 401 or 403 error and is passing it on
    to the user. The url property will contain the url in question,
    the reason property will contain the excuse the server sent.
    """

    pass


class PropfindError(TransportError):
    pass


class ReportError(TransportError):
    pass


class PutError(TransportError):
    pass


class UrlError(DAVError):
    """A relative reference could not be resolved against its base"""

    pass


class ProtocolError(DAVError):
    """
    The server response was well-formed, but it does not fulfil the
    expectations of the discovery or query sequence: a missing
    property, an unexpected status and such.
    """

    pass


class DocumentParseError(DAVError):
    """
    Grammar violation in either a multistatus XML document or a
    calendar-object document.  ``line`` holds the offending line (or
    tag) when one can be pointed out.
    """

    line: Optional[str] = None

    def __init__(
        self,
        url: Optional[str] = None,
        reason: Optional[str] = None,
        line: Optional[str] = None,
    ) -> None:
        super(DocumentParseError, self).__init__(url, reason)
        if line is not None:
            self.line = line

    def __str__(self) -> str:
        ret = super(DocumentParseError, self).__str__()
        if self.line is not None:
            ret += " (line: %r)" % self.line
        return ret


class TimestampError(DAVError):
    """A COMPLETED value is not on the form YYYYMMDDTHHMMSSZ"""

    pass


class InvariantViolation(DAVError):
    """
    Only reachable through a bug in this library, never through server
    input.  Please report it.
    """

    pass


class NotFoundError(DAVError):
    pass


exception_by_method: Dict[str, DAVError] = defaultdict(lambda: TransportError)
for method in (
    "put",
    "report",
    "propfind",
):
    exception_by_method[method] = locals()[method[0].upper() + method[1:] + "Error"]
