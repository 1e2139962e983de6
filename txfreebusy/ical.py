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
iCalendar Utilities
"""

__all__ = [
    "iCalendarProductID",
    "InvalidICalendarDataError",
    "parseCalendar",
    "isCalendarContentType",
    "subcomponents",
    "propertyValue",
    "buildFreeBusyResult",
]

import datetime
import uuid

from icalendar import Calendar, FreeBusy, vPeriod

from txfreebusy.dateops import utc

iCalendarProductID = "-//CALENDARSERVER.ORG//NONSGML Version 1//EN"

CALENDAR_CONTENT_TYPE = "text/calendar"


class InvalidICalendarDataError(ValueError):
    pass



def parseCalendar(data):
    """
    Parse iCalendar text into a VCALENDAR component.

    @param data: the iCalendar text.
    @type data: L{str} or L{bytes}
    @raise InvalidICalendarDataError: if the text is not a single VCALENDAR.
    """
    try:
        calendar = Calendar.from_ical(data)
    except ValueError as e:
        raise InvalidICalendarDataError(str(e))
    if calendar.name != "VCALENDAR":
        raise InvalidICalendarDataError("Not a VCALENDAR: %s" % (calendar.name,))
    return calendar



def isCalendarContentType(contentType):
    """
    Check that a Content-Type header value denotes iCalendar data. Parameters
    such as C{charset} are ignored.
    """
    if contentType is None:
        return False
    if isinstance(contentType, bytes):
        contentType = contentType.decode("latin-1")
    return contentType.split(";", 1)[0].strip().lower() == CALENDAR_CONTENT_TYPE



def subcomponents(calendar, name):
    """
    Return the direct sub-components of C{calendar} named C{name}.
    """
    return [component for component in calendar.subcomponents if component.name == name]



def propertyValue(component, name):
    """
    Return the text value of a single-valued property, or C{None}.
    """
    value = component.get(name)
    if value is None:
        return None
    if isinstance(value, list):
        value = value[0]
    return str(value)



def buildFreeBusyResult(intervals, timerange, organizerProp=None, attendeeProp=None, uid=None, method="REPLY"):
    """
    Generate a VCALENDAR object containing a single VFREEBUSY that is the
    aggregate of the free busy info passed in.

    @param intervals: the L{BusyInterval}s to use, already merged and clipped.
    @param timerange: the L{Period} the VFREEBUSY covers.
    @param organizerProp: the ORGANIZER property from the request.
    @param attendeeProp: the ATTENDEE property for this attendee.
    @param uid: the UID from the request, a new one is generated if C{None}.
    @param method: the METHOD property value to insert.
    @return: the L{Calendar} containing the calendar data.
    """

    fbcalendar = Calendar()
    fbcalendar.add("VERSION", "2.0")
    fbcalendar.add("PRODID", iCalendarProductID)
    if method:
        fbcalendar.add("METHOD", method)

    fb = FreeBusy()
    fbcalendar.add_component(fb)
    if organizerProp is not None:
        fb.add("ORGANIZER", organizerProp)
    if attendeeProp is not None:
        fb.add("ATTENDEE", attendeeProp)
    fb.add("DTSTART", timerange.start)
    fb.add("DTEND", timerange.end)
    fb.add("DTSTAMP", datetime.datetime.now(utc).replace(microsecond=0))
    for interval in intervals:
        period = vPeriod((interval.start, interval.end))
        period.params.pop("VALUE", None)
        # BUSY is the default FBTYPE and is left untagged
        if interval.fbtype.value != "BUSY":
            period.params["FBTYPE"] = interval.fbtype.value
        fb.add("FREEBUSY", period)
    fb.add("UID", uid if uid is not None else str(uuid.uuid4()))

    return fbcalendar
