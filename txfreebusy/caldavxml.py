##
# Copyright (c) 2005-2017 Apple Inc. All rights reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
##

"""
CalDAV scheduling XML Support.

This module provides XML element definitions for the CalDAV
schedule-response document and the WebDAV elements it embeds.

See RFC 6638: https://tools.ietf.org/html/rfc6638
"""

__all__ = [
    "dav_namespace",
    "caldav_namespace",
    "WebDAVElement",
    "WebDAVTextElement",
    "WebDAVUnknownElement",
    "PCDATAElement",
    "HRef",
    "Error",
    "ErrorDescription",
    "ScheduleResponse",
    "Response",
    "Recipient",
    "RequestStatus",
    "CalendarData",
]

from xml.etree import ElementTree

dav_namespace = "DAV:"
caldav_namespace = "urn:ietf:params:xml:ns:caldav"
twisted_dav_namespace = "http://twistedmatrix.com/xml_namespace/dav/"

ElementTree.register_namespace("D", dav_namespace)
ElementTree.register_namespace("C", caldav_namespace)



class PCDATAElement(object):
    """
    Character data inside an element.
    """

    def __init__(self, data):
        self.data = data


    def __str__(self):
        return self.data


    def __repr__(self):
        return "<%s: %r>" % (self.__class__.__name__, self.data)


    def __eq__(self, other):
        return isinstance(other, PCDATAElement) and self.data == other.data


    def __ne__(self, other):
        return not self.__eq__(other)



class WebDAVElement(object):
    """
    WebDAV XML element.
    """
    namespace = dav_namespace  # Element namespace (class variable)
    name = None  # Element name (class variable)
    allowed_children = None  # Types & count limits on child elements

    def __init__(self, *children):
        super(WebDAVElement, self).__init__()

        if self.allowed_children is None:
            raise NotImplementedError(
                "WebDAVElement subclass %s is not implemented."
                % (self.__class__.__name__,)
            )

        my_children = []
        for child in children:
            if child is None:
                continue
            if isinstance(child, str):
                child = PCDATAElement(child)
            my_children.append(child)

        self.children = tuple(my_children)
        self.validate()


    @classmethod
    def qname(cls):
        return (cls.namespace, cls.name)


    @classmethod
    def sname(cls):
        return "{%s}%s" % (cls.namespace, cls.name)


    def validate(self):
        """
        Check the children of this element against C{allowed_children}.

        @raise ValueError: if a child is not allowed or a child count is out
            of range.
        """
        counts = dict([(qname, 0) for qname in self.allowed_children])
        for child in self.children:
            if isinstance(child, PCDATAElement):
                if PCDATAElement not in self.allowed_children:
                    if child.data.strip():
                        raise ValueError("PCDATA not allowed in %s" % (self.sname(),))
                    continue
                counts[PCDATAElement] += 1
                continue

            qname = child.qname()
            if qname in counts:
                counts[qname] += 1
            elif WebDAVElement in self.allowed_children:
                counts[WebDAVElement] += 1
            else:
                raise ValueError(
                    "Child of type %s is unexpected and therefore ignored in %s element"
                    % ("{%s}%s" % qname, self.sname())
                )

        for qname, (min, max) in self.allowed_children.items():
            if counts[qname] < min:
                raise ValueError(
                    "Not enough children of type %s for %s"
                    % (qname, self.sname())
                )
            if max is not None and counts[qname] > max:
                raise ValueError(
                    "Too many children of type %s for %s"
                    % (qname, self.sname())
                )


    def __str__(self):
        return "".join([str(child) for child in self.children if isinstance(child, PCDATAElement)])


    def __repr__(self):
        return "<%s>" % (self.sname(),)


    def __eq__(self, other):
        if isinstance(other, WebDAVElement):
            return self.qname() == other.qname() and self.children == other.children
        return NotImplemented


    def __ne__(self, other):
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    __hash__ = None


    def childOfType(self, child_type):
        """
        Returns a child of the given type, if any, or None.
        Raises ValueError if more than one is found.
        """
        found = None
        for child in self.children:
            if isinstance(child, child_type):
                if found:
                    raise ValueError("Found multiple %s children in %s" % (child_type.sname(), self.sname()))
                found = child
        return found


    def toElement(self):
        """
        Convert to an L{ElementTree.Element}.
        """
        element = ElementTree.Element(self.sname())
        last = None
        for child in self.children:
            if isinstance(child, PCDATAElement):
                if last is None:
                    element.text = (element.text or "") + child.data
                else:
                    last.tail = (last.tail or "") + child.data
            else:
                last = child.toElement()
                element.append(last)
        return element


    def toxml(self):
        """
        Serialize this element as a complete UTF-8 XML document.
        """
        return ElementTree.tostring(self.toElement(), encoding="utf-8", xml_declaration=True)



class WebDAVTextElement(WebDAVElement):
    """
    WebDAV element containing PCDATA.
    """
    allowed_children = {PCDATAElement: (0, None)}

    @classmethod
    def fromString(cls, string):
        if string is None:
            return cls()
        elif isinstance(string, bytes):
            string = string.decode("utf-8")
        return cls(PCDATAElement(string))



class WebDAVUnknownElement(WebDAVElement):
    """
    An element with no class of its own, used for precondition and
    postcondition codes.
    """
    allowed_children = {WebDAVElement: (0, None), PCDATAElement: (0, None)}

    @classmethod
    def withName(cls, namespace, name, *children):
        child = cls.__new__(cls)
        child.namespace = namespace
        child.name = name
        WebDAVElement.__init__(child, *children)
        return child


    def qname(self):
        return (self.namespace, self.name)


    def sname(self):
        return "{%s}%s" % (self.namespace, self.name)



class CalDAVElement(WebDAVElement):
    """
    CalDAV XML element.
    """
    namespace = caldav_namespace



class CalDAVTextElement(WebDAVTextElement):
    """
    CalDAV element containing PCDATA.
    """
    namespace = caldav_namespace



class HRef(WebDAVTextElement):
    """
    Identifies the content of the element as a URI.
    (RFC 2518, section 12.3)
    """
    name = "href"



class ErrorDescription(WebDAVTextElement):
    """
    Human readable text describing an error.
    """
    namespace = twisted_dav_namespace
    name = "error-description"



class Error(WebDAVElement):
    """
    Precondition/postcondition error.
    (RFC 4918, section 16)
    """
    name = "error"

    allowed_children = {WebDAVElement: (0, None)}



class ScheduleResponse(CalDAVElement):
    """
    The set of responses for a SCHEDULE method operation.
    (CalDAV-schedule, RFC 6638 section 10.1)
    """
    name = "schedule-response"

    allowed_children = {(caldav_namespace, "response"): (0, None)}



class Response(CalDAVElement):
    """
    A response to an iTIP request against a specific recipient.
    (CalDAV-schedule, RFC 6638 section 10.2)
    """
    name = "response"

    allowed_children = {
        (caldav_namespace, "recipient"): (1, 1),
        (caldav_namespace, "request-status"): (1, 1),
        (caldav_namespace, "calendar-data"): (0, 1),
        (dav_namespace, "error"): (0, 1),
    }



class Recipient(CalDAVElement):
    """
    The recipient for whom this response is for.
    (CalDAV-schedule, RFC 6638 section 10.3)
    """
    name = "recipient"

    allowed_children = {(dav_namespace, "href"): (1, 1)}



class RequestStatus(CalDAVTextElement):
    """
    The iTIP REQUEST-STATUS value for the iTIP operation.
    (CalDAV-schedule, RFC 6638 section 10.4)
    """
    name = "request-status"



class CalendarData(CalDAVTextElement):
    """
    Calendar data returned for a recipient.
    (CalDAV-access, RFC 4791 section 9.6)
    """
    name = "calendar-data"

    @classmethod
    def fromCalendar(cls, calendar):
        """
        @param calendar: an iCalendar object or its text.
        """
        if not isinstance(calendar, (str, bytes)):
            calendar = calendar.to_ical()
        return cls.fromString(calendar)
