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
Parsing and validation of VFREEBUSY scheduling requests posted to an outbox.

All checks happen before any directory or store I/O. Each failure is an
exception that knows the HTTP response it maps to.
"""

__all__ = [
    "SchedulingRequest",
    "SchedulingRequestError",
    "MalformedRequest",
    "UnsupportedMethod",
    "UnsupportedMediaType",
    "UnsupportedComponent",
    "OrganizerMismatch",
    "parseSchedulingRequest",
]

from collections import namedtuple

from twisted.web import http

from txfreebusy.caldavxml import caldav_namespace
from txfreebusy.cuaddress import normalizeCUAddr
from txfreebusy.dateops import Period, normalizeToUTC
from txfreebusy.http import ErrorResponse, HTTPError, StatusResponse
from txfreebusy.ical import InvalidICalendarDataError, isCalendarContentType, \
    parseCalendar, propertyValue, subcomponents


class SchedulingRequest(namedtuple(
    "SchedulingRequest",
    ("organizer", "attendees", "timerange", "organizerProp", "attendeeProps", "uid",)
)):
    """
    A validated VFREEBUSY request.

    C{attendees} keeps the request order and any duplicates, C{timerange} is
    a UTC L{Period}. The C{*Prop} attributes are the iCalendar properties
    as they appeared in the request.
    """

    __slots__ = ()



class SchedulingRequestError(Exception):
    """
    A scheduling request was rejected before any attendee was processed.
    """

    responseCode = http.BAD_REQUEST
    errorElement = None

    def response(self):
        """
        @return: the L{txfreebusy.http.Response} to send for this error.
        """
        if self.errorElement is not None:
            return ErrorResponse(self.responseCode, self.errorElement, str(self))
        return StatusResponse(self.responseCode, str(self))


    def httpError(self):
        return HTTPError(self.response())



class MalformedRequest(SchedulingRequestError):
    responseCode = http.BAD_REQUEST
    errorElement = (caldav_namespace, "valid-calendar-data")



class UnsupportedMethod(MalformedRequest):
    """
    The iTIP METHOD is not REQUEST.
    """
    responseCode = http.NOT_IMPLEMENTED
    errorElement = None



class UnsupportedMediaType(SchedulingRequestError):
    """
    The request body is not iCalendar data. The dispatcher treats this as a
    request for some other handler.
    """
    responseCode = http.UNSUPPORTED_MEDIA_TYPE
    errorElement = (caldav_namespace, "supported-calendar-data")



class UnsupportedComponent(SchedulingRequestError):
    """
    The calendar data has no VFREEBUSY component.
    """
    responseCode = http.NOT_IMPLEMENTED



class OrganizerMismatch(SchedulingRequestError):
    """
    The ORGANIZER is not one of the requester's own addresses.
    """
    responseCode = http.FORBIDDEN
    errorElement = (caldav_namespace, "organizer-allowed")



def parseSchedulingRequest(data, contentType, organizerAddresses):
    """
    Parse and validate a VFREEBUSY request.

    @param data: the request body.
    @type data: L{bytes} or L{str}
    @param contentType: the request Content-Type header value.
    @param organizerAddresses: the calendar user addresses of the requester.
    @return: a L{SchedulingRequest}.
    @raise SchedulingRequestError: if the request is not acceptable.
    """

    if not isCalendarContentType(contentType):
        raise UnsupportedMediaType("Content-Type is not text/calendar: %s" % (contentType,))

    try:
        calendar = parseCalendar(data)
    except InvalidICalendarDataError as e:
        raise MalformedRequest("Calendar data is not valid: %s" % (e,))

    # Must have a METHOD
    method = propertyValue(calendar, "METHOD")
    if not method:
        raise MalformedRequest("Must have valid METHOD property")

    vfreebusies = subcomponents(calendar, "VFREEBUSY")
    if not vfreebusies:
        raise UnsupportedComponent("Only VFREEBUSY scheduling requests are supported")

    if method.upper() != "REQUEST":
        raise UnsupportedMethod("Unsupported iTIP method for VFREEBUSY: %s" % (method,))

    if len(vfreebusies) != 1:
        raise MalformedRequest("iTIP data is not valid for a VFREEBUSY request")
    vfreebusy = vfreebusies[0]

    organizerProp = vfreebusy.get("ORGANIZER")
    if organizerProp is None:
        raise MalformedRequest("Missing organizer")
    if isinstance(organizerProp, list):
        raise MalformedRequest("Only one organizer is allowed")
    organizer = str(organizerProp)

    addresses = set([normalizeCUAddr(address) for address in organizerAddresses])
    if normalizeCUAddr(organizer) not in addresses:
        raise OrganizerMismatch("Organizer does not match the authenticated user: %s" % (organizer,))

    attendeeProps = vfreebusy.get("ATTENDEE")
    if attendeeProps is None:
        raise MalformedRequest("Must have at least one attendee")
    if not isinstance(attendeeProps, list):
        attendeeProps = [attendeeProps]

    if "DTSTART" not in vfreebusy or "DTEND" not in vfreebusy:
        raise MalformedRequest("VFREEBUSY start/end not valid")
    try:
        # Some clients send floating instead of UTC - coerce to UTC
        start = normalizeToUTC(vfreebusy.decoded("DTSTART"))
        end = normalizeToUTC(vfreebusy.decoded("DTEND"))
    except (TypeError, ValueError):
        raise MalformedRequest("VFREEBUSY start/end not valid")
    if end <= start:
        raise MalformedRequest("VFREEBUSY end must be after start")

    return SchedulingRequest(
        organizer,
        tuple([str(attendee) for attendee in attendeeProps]),
        Period(start, end),
        organizerProp,
        tuple(attendeeProps),
        propertyValue(vfreebusy, "UID"),
    )
