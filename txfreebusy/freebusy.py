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
Free busy computation for one calendar home.
"""

__all__ = [
    "FreeBusyType",
    "BusyInterval",
    "AvailabilityWindow",
    "parseAvailability",
    "FreebusyQuery",
]

from collections import namedtuple
import datetime

from constantly import ValueConstant, Values

from twisted.internet.defer import inlineCallbacks
from twisted.logger import Logger

from txfreebusy.config import config
from txfreebusy.dateops import Period, clipPeriod, invertPeriodList, \
    normalizePeriodList, normalizeToUTC, subtractPeriodList, utc
from txfreebusy.ical import parseCalendar, propertyValue, subcomponents
from txfreebusy.icalendarstore import QueryMaxResources, Transparency
from txfreebusy.instance import expandCalendarData, expandComponents

log = Logger()

# Bounds of a VAVAILABILITY without DTSTART or DTEND
AVAILABILITY_START = datetime.datetime(1900, 1, 1, tzinfo=utc)
AVAILABILITY_END = datetime.datetime(2100, 1, 1, tzinfo=utc)


class FreeBusyType(Values):
    """
    FBTYPE parameter values of FREEBUSY properties.
    """

    BUSY = ValueConstant("BUSY")
    BUSY_TENTATIVE = ValueConstant("BUSY-TENTATIVE")
    BUSY_UNAVAILABLE = ValueConstant("BUSY-UNAVAILABLE")



class BusyInterval(namedtuple("BusyInterval", ("start", "end", "fbtype",))):
    """
    A half-open UTC interval of a given L{FreeBusyType}.
    """

    __slots__ = ()

    def period(self):
        return Period(self.start, self.end)



AvailabilityWindow = namedtuple("AvailabilityWindow", ("period", "available",))



def parseAvailability(data, timerange):
    """
    Extract the availability windows of a calendar-availability property.

    @param data: iCalendar text containing VAVAILABILITY components.
    @param timerange: the L{Period} to expand recurring AVAILABLE
        components within.
    @return: L{list} of L{AvailabilityWindow}, each with its AVAILABLE
        periods sorted and merged.
    @raise InvalidICalendarDataError: if C{data} cannot be parsed.
    """

    calendar = parseCalendar(data)
    windows = []
    for vav in subcomponents(calendar, "VAVAILABILITY"):

        # Get overall start/end
        if "DTSTART" in vav:
            start = normalizeToUTC(vav.decoded("DTSTART"))
        else:
            start = AVAILABILITY_START
        if "DTEND" in vav:
            end = normalizeToUTC(vav.decoded("DTEND"))
        elif "DURATION" in vav and "DTSTART" in vav:
            end = start + vav.decoded("DURATION")
        else:
            end = AVAILABILITY_END

        # Now get periods for each instance of AVAILABLE sub-components
        available = [
            Period(instance.start, instance.end)
            for instance in expandComponents(subcomponents(vav, "AVAILABLE"), timerange)
            if instance.start < instance.end
        ]
        normalizePeriodList(available)
        windows.append(AvailabilityWindow(Period(start, end), available))

    return windows



class FreebusyQuery(object):
    """
    Class that manages the process of getting free busy information of a particular attendee.
    """

    def __init__(self, store, timerange, availability=None, expander=expandCalendarData, maxResults=None):
        """
        @param store: the calendar store holding the attendee's calendars.
        @type store: L{ICalendarStore}
        @param timerange: time range for freebusy request
        @type timerange: L{Period}
        @param availability: the attendee's availability windows, or C{None}
            if the attendee declared none.
        @type availability: L{list} of L{AvailabilityWindow}
        @param expander: callable expanding calendar object text into
            L{Instance}s, with the signature of L{expandCalendarData}.
        @param maxResults: limit on the number of matched calendar objects,
            C{config.MaxQueryWithDataResults} if C{None}.
        """
        self.store = store
        self.timerange = timerange
        self.availability = availability if availability is not None else []
        self.expander = expander
        self.maxResults = config.MaxQueryWithDataResults if maxResults is None else maxResults


    @inlineCallbacks
    def generateFreeBusyInfo(self, home):
        """
        Compute the busy intervals of every opaque calendar in C{home}
        combined with the unavailable time of the availability windows.

        @return: a L{Deferred} firing with a L{list} of L{BusyInterval}
            sorted by start.
        @raise QueryMaxResources: if too many calendar objects match.
        """

        busy = []
        matchtotal = 0
        calendars = yield self.store.calendarsInHome(home)
        for calendar in calendars:

            # Transparent calendars never contribute
            transparency = yield self.store.calendarTransparency(calendar)
            if transparency is Transparency.transparent:
                log.debug("Skipping transparent calendar {calendar}", calendar=calendar)
                continue

            tzinfo = yield self.store.calendarTimezone(calendar)
            objects = yield self.store.calendarObjectsInTimeRange(
                calendar, self.timerange.start, self.timerange.end
            )

            matchtotal += len(objects)
            if self.maxResults and matchtotal > self.maxResults:
                raise QueryMaxResources(self.maxResults, matchtotal)

            for data in objects:
                busy.extend(self.processEventFreeBusy(data, tzinfo))

        normalizePeriodList(busy)

        # An event during unavailable time is reported as busy
        unavailable = subtractPeriodList(self.processAvailabilityFreeBusy(), busy)

        results = [BusyInterval(period.start, period.end, FreeBusyType.BUSY) for period in busy]
        results.extend([BusyInterval(period.start, period.end, FreeBusyType.BUSY_UNAVAILABLE) for period in unavailable])
        results.sort(key=lambda interval: (interval.start, interval.end))
        return results


    def processEventFreeBusy(self, data, tzinfo):
        """
        Extract free busy periods from the VEVENTs of one calendar object.

        @param data: the calendar object text.
        @param tzinfo: the timezone to use for floating times.
        @return: L{list} of clipped L{Period}.
        """

        try:
            instances = self.expander(data, self.timerange, tzinfo)
        except ValueError as e:
            log.error("Ignoring invalid calendar object in free busy query: {ex}", ex=e)
            return []

        periods = []
        for instance in instances:

            # Can only do timed events
            if instance.isDateOnly():
                continue

            # If its TRANSPARENT we always ignore it
            transp = propertyValue(instance.component, "TRANSP")
            if transp is not None and transp.upper() == "TRANSPARENT":
                continue

            # Ignore cancelled, tentative counts as busy
            status = propertyValue(instance.component, "STATUS")
            if status is not None and status.upper() == "CANCELLED":
                continue

            clipped = clipPeriod(Period(instance.start, instance.end), self.timerange)
            if clipped is not None:
                periods.append(clipped)

        return periods


    def processAvailabilityFreeBusy(self):
        """
        Compute the unavailable time within the query range: the gaps between
        AVAILABLE periods inside the part of each availability window that
        overlaps the range.

        @return: normalized L{list} of L{Period}.
        """

        unavailable = []
        for window in self.availability:
            overall = clipPeriod(window.period, self.timerange)
            if overall is None:
                continue
            unavailable.extend(invertPeriodList(sorted(window.available), overall))

        normalizePeriodList(unavailable)
        return unavailable
