#!/usr/bin/env python
import sys
from typing import Any
from typing import Optional
from typing import Union
from urllib.parse import ParseResult
from urllib.parse import SplitResult
from urllib.parse import urljoin
from urllib.parse import urlparse

from davtasks.lib.error import UrlError
from davtasks.lib.python_utilities import to_unicode

if sys.version_info < (3, 11):
    from typing_extensions import Self
else:
    from typing import Self


class URL:
    """
    This class is for wrapping URLs into objects.  All methods in the
    library that accept URLs can be fed either with a URL object or a
    string.

    Servers hand out hrefs in three flavours:

    1) a path relative to the resource queried, i.e. "tasks/" when
    asking "https://dav.example.com/calendars/someuser/"

    2) an absolute path, i.e. "/calendars/someuser/tasks/"

    3) a fully qualified URL, i.e.
    "https://dav.example.com/calendars/someuser/tasks/"

    ``join`` resolves all of them against a base URL following RFC
    3986, so the result is always fully qualified.
    """

    def __init__(self, url: Union[str, ParseResult, SplitResult]) -> None:
        if isinstance(url, (ParseResult, SplitResult)):
            self.url_raw = url.geturl()
        else:
            self.url_raw = to_unicode(url)
        self._parsed: Optional[ParseResult] = None

    def __bool__(self) -> bool:
        return bool(self.url_raw)

    def __eq__(self, other: object) -> bool:
        return str(self) == str(other)

    def __ne__(self, other: object) -> bool:
        return not self == other

    def __hash__(self) -> int:
        return hash(str(self))

    @classmethod
    def objectify(cls, url: Union[Self, str, ParseResult, SplitResult, None]) -> "URL":
        if url is None or isinstance(url, URL):
            return url
        else:
            return URL(url)

    @property
    def parsed(self) -> ParseResult:
        if self._parsed is None:
            try:
                self._parsed = urlparse(self.url_raw)
                ## accessing the port validates it
                self._parsed.port
            except ValueError as e:
                raise UrlError(url=self.url_raw, reason=str(e))
        return self._parsed

    # To deal with all kind of methods/properties in the ParseResult
    # class
    def __getattr__(self, attr: str) -> Any:
        if attr.startswith("_") or attr in ("url_raw", "parsed"):
            raise AttributeError(attr)
        return getattr(self.parsed, attr)

    def __str__(self) -> str:
        return self.url_raw

    def __repr__(self) -> str:
        return "URL(%s)" % str(self)

    def is_absolute(self) -> bool:
        return bool(self.parsed.scheme and self.parsed.netloc)

    def join(self, path: Any) -> "URL":
        """
        assumes this object is the base URL.  Resolves ``path`` (an
        href as delivered by the server) against it.  Raises UrlError
        if the base isn't fully qualified, or if the reference or the
        result is malformed.
        """
        if not self.is_absolute():
            raise UrlError(
                url=str(self), reason="can't resolve %r against a relative base" % str(path)
            )
        path_str = str(path).strip() if path is not None else ""
        if not path_str:
            raise UrlError(url=str(self), reason="empty reference")
        ## validate the reference before joining
        URL(path_str).parsed
        ret = URL(urljoin(str(self), path_str))
        if not ret.is_absolute():
            raise UrlError(url=str(ret), reason="reference %r is unresolvable" % path_str)
        return ret
