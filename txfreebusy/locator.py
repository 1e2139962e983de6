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
Discovery of a principal's scheduling resources.
"""

__all__ = [
    "ScheduleResources",
    "ScheduleResourceLocator",
]

from collections import namedtuple

from twisted.internet.defer import inlineCallbacks
from twisted.logger import Logger

from txfreebusy.icalendarstore import CalendarAvailabilityProperty, \
    CalendarHomeSetProperty, PropertyState, ScheduleInboxURLProperty
from txfreebusy.itip import NoCalendarHome, NoInboxFound

log = Logger()


ScheduleResources = namedtuple("ScheduleResources", ("home", "inbox", "availability",))



def _missing(value):
    return value is None or value in (PropertyState.absent, PropertyState.denied)



class ScheduleResourceLocator(object):

    propertyNames = [
        CalendarHomeSetProperty,
        ScheduleInboxURLProperty,
        CalendarAvailabilityProperty,
    ]

    def __init__(self, properties):
        """
        @param properties: the property substrate.
        @type properties: L{IPropertyLookup}
        """
        self.properties = properties


    @inlineCallbacks
    def locate(self, principal):
        """
        Fetch the calendar home, inbox and availability of C{principal} in a
        single property lookup.

        @return: a L{Deferred} firing with L{ScheduleResources}, or with a
            L{NoCalendarHome} or L{NoInboxFound} status. Failure of the lookup
            itself is passed on as an errback.
        """
        props = yield self.properties.fetchProperties(principal, list(self.propertyNames))

        home = props.get(CalendarHomeSetProperty)
        if _missing(home):
            log.debug("No calendar-home-set for {principal}", principal=principal.principalURL)
            return NoCalendarHome()

        inbox = props.get(ScheduleInboxURLProperty)
        if _missing(inbox):
            log.debug("No schedule-inbox-URL for {principal}", principal=principal.principalURL)
            return NoInboxFound()

        availability = props.get(CalendarAvailabilityProperty)
        if _missing(availability):
            availability = None

        return ScheduleResources(home, inbox, availability)
