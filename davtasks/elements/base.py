#!/usr/bin/env python
"""
Building blocks for the XML request bodies.  Each subclass stands for
one element (in the DAV: or CalDAV namespace), and elements are
nested with ``+``:

    dav.Propfind() + (dav.Prop() + [dav.GetEtag(), dav.DisplayName()])
"""
import sys
from typing import ClassVar
from typing import List
from typing import Optional
from typing import Union

from lxml import etree
from lxml.etree import _Element

from davtasks.lib.namespace import nsmap
from davtasks.lib.python_utilities import to_unicode

if sys.version_info < (3, 9):
    from typing import Iterable
else:
    from collections.abc import Iterable

if sys.version_info < (3, 11):
    from typing_extensions import Self
else:
    from typing import Self


class BaseElement:
    tag: ClassVar[Optional[str]] = None

    def __init__(
        self, name: Optional[str] = None, value: Union[str, bytes, None] = None
    ) -> None:
        self.children: List[BaseElement] = []
        self.attributes = {}
        if name is not None:
            self.attributes["name"] = name
        self.value = to_unicode(value)

    def __add__(self, other: Union["BaseElement", Iterable["BaseElement"]]) -> Self:
        return self.append(other)

    def __str__(self) -> str:
        return str(self.tostring(pretty_print=True), "utf-8")

    def append(self, element: Union["BaseElement", Iterable["BaseElement"]]) -> Self:
        if isinstance(element, Iterable):
            self.children.extend(element)
        else:
            self.children.append(element)
        return self

    def xmlelement(self) -> _Element:
        if self.tag is None:
            raise ValueError("%s has no tag" % type(self).__name__)
        root = etree.Element(self.tag, nsmap=nsmap)
        if self.value is not None:
            root.text = self.value
        for key, value in self.attributes.items():
            root.set(key, value)
        for child in self.children:
            root.append(child.xmlelement())
        return root

    def tostring(self, pretty_print: bool = False) -> bytes:
        """The element as an UTF-8 encoded XML document"""
        return etree.tostring(
            self.xmlelement(),
            encoding="utf-8",
            xml_declaration=True,
            pretty_print=pretty_print,
        )


class NamedBaseElement(BaseElement):
    """An element that can't do without a name attribute, like comp-filter"""

    def __init__(self, name: Optional[str] = None) -> None:
        super(NamedBaseElement, self).__init__(name=name)

    def xmlelement(self) -> _Element:
        if self.attributes.get("name") is None:
            raise ValueError("%s requires a name attribute" % type(self).__name__)
        return super(NamedBaseElement, self).xmlelement()


class ValuedBaseElement(BaseElement):
    def __init__(self, value: Union[str, bytes, None] = None) -> None:
        super(ValuedBaseElement, self).__init__(value=value)
