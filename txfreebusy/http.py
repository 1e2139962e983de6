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
HTTP responses and errors produced by the free busy engine.
"""

__all__ = [
    "Response",
    "XMLResponse",
    "StatusResponse",
    "ErrorResponse",
    "HTTPError",
]

from html import escape

from twisted.web import http
from twisted.web.http_headers import Headers

from txfreebusy import caldavxml


class Response(object):
    """
    An HTTP response: status code, headers and body.
    """

    def __init__(self, code=http.OK, headers=None, stream=b""):
        self.code = code
        self.headers = headers if headers is not None else Headers()
        if isinstance(stream, str):
            stream = stream.encode("utf-8")
        self.stream = stream


    def __repr__(self):
        return "<%s %s>" % (self.__class__.__name__, self.code)



class XMLResponse(Response):
    """
    XML L{Response} object.
    Renders itself as an XML document.
    """

    def __init__(self, code, element):
        Response.__init__(self, code, stream=element.toxml())
        self.headers.setRawHeaders(b"content-type", [b"application/xml"])



class StatusResponse(Response):
    """
    A L{Response} object which simply contains a status code and a
    description of what happened.
    """

    def __init__(self, code, description, title=None):
        """
        @param code: a response code.
        @param description: a human-readable description of what happened.
        @param title: the title of the entity to return, defaults to the
            standard message for C{code}.
        """
        if title is None:
            title = http.RESPONSES.get(code, b"").decode("ascii")

        output = "".join((
            "<html>",
            "<head>",
            "<title>%s</title>" % (escape(title),),
            "</head>",
            "<body>",
            "<h1>%s</h1>" % (escape(title),),
            "<p>%s</p>" % (escape(description),),
            "</body>",
            "</html>",
        ))

        Response.__init__(self, code=code, stream=output)
        self.headers.setRawHeaders(b"content-type", [b"text/html; charset=utf-8"])

        self.description = description


    def __repr__(self):
        return "<%s %s %s>" % (self.__class__.__name__, self.code, self.description)



class ErrorResponse(Response):
    """
    A L{Response} object which contains a status code and a L{caldavxml.Error}
    element.
    Renders itself as a DAV:error XML document.
    """
    error = None

    def __init__(self, code, error, description=None):
        """
        @param code: a response code.
        @param error: an L{WebDAVElement} identifying the error, or a
            tuple C{(namespace, name)} with which to create an empty element
            denoting the error.  (The latter is useful in the case of
            preconditions ans postconditions, not all of which have defined
            XML element classes.)
        @param description: an optional string that, if present, will get
            wrapped in a (twisted_dav_namespace, error-description) element.
        """
        if type(error) is tuple:
            xml_namespace, xml_name = error
            error = caldavxml.WebDAVUnknownElement.withName(xml_namespace, xml_name)

        self.description = description
        if self.description:
            output = caldavxml.Error(error, caldavxml.ErrorDescription.fromString(self.description)).toxml()
        else:
            output = caldavxml.Error(error).toxml()

        Response.__init__(self, code=code, stream=output)
        self.headers.setRawHeaders(b"content-type", [b"application/xml"])

        self.error = error


    def __repr__(self):
        return "<%s %s %s>" % (self.__class__.__name__, self.code, self.error.sname())



class HTTPError(Exception):
    """
    Exception for propagating HTTP error responses.
    """

    def __init__(self, codeOrResponse):
        """
        @param codeOrResponse: a response code or a L{Response}.
        """
        if not isinstance(codeOrResponse, Response):
            codeOrResponse = StatusResponse(codeOrResponse, http.RESPONSES.get(codeOrResponse, b"").decode("ascii"))
        Exception.__init__(self, codeOrResponse)
        self.response = codeOrResponse


    def __repr__(self):
        return "<%s %s>" % (self.__class__.__name__, self.response)
