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
In-memory collaborators for free busy tests.
"""

__all__ = [
    "TestCase",
    "FakePrincipal",
    "FakeDirectory",
    "FakePropertyStore",
    "FakeCalendar",
    "FakeCalendarStore",
    "FakeRequester",
    "FakeOutbox",
    "FakeAccessControl",
    "calendarText",
    "eventObject",
    "opaqueEventData",
    "transparentEventData",
    "availabilityData",
]

from twisted.internet.defer import Deferred, fail, succeed
from twisted.trial import unittest
from zope.interface import implementer

from txfreebusy.config import config
from txfreebusy.cuaddress import normalizeCUAddr, normalizedAddresses
from txfreebusy.icalendarstore import CalendarAvailabilityProperty, \
    CalendarHomeSetProperty, IAccessControl, ICalendarStore, IPrincipal, \
    IPrincipalDirectory, IPropertyLookup, IRequester, IScheduleOutbox, \
    PropertyState, ScheduleInboxURLProperty, Transparency


class TestCase(unittest.TestCase):
    """
    Base test case restoring the global configuration after each test.
    """

    def setUp(self):
        super(TestCase, self).setUp()
        config.reset()
        self.addCleanup(config.reset)



@implementer(IPrincipal)
class FakePrincipal(object):

    def __init__(self, uid, calendarUserAddresses, principalURL=None):
        self.uid = uid
        self.principalURL = principalURL if principalURL is not None else "/principals/%s/" % (uid,)
        self.calendarUserAddresses = tuple(calendarUserAddresses)


    def __repr__(self):
        return "<FakePrincipal %s>" % (self.uid,)



@implementer(IPrincipalDirectory)
class FakeDirectory(object):
    """
    Directory searching a fixed list of principals.

    Lookups of addresses in C{hang} never complete, lookups of addresses in
    C{broken} fail with C{RuntimeError}.
    """

    def __init__(self, principals, hang=(), broken=()):
        self.principals = list(principals)
        self.hang = set([normalizeCUAddr(address) for address in hang])
        self.broken = set([normalizeCUAddr(address) for address in broken])
        self.lookups = []
        self.waiting = []


    def principalsWithCalendarUserAddress(self, address):
        self.lookups.append(address)
        key = normalizeCUAddr(address)
        if key in self.hang:
            d = Deferred()
            self.waiting.append(d)
            return d
        if key in self.broken:
            return fail(RuntimeError("Directory unavailable"))
        return succeed([
            principal for principal in self.principals
            if key in normalizedAddresses(principal)
        ])



@implementer(IPropertyLookup)
class FakePropertyStore(object):
    """
    Properties keyed by principal UID. Missing properties are reported as
    L{PropertyState.absent}.
    """

    def __init__(self):
        self.properties = {}
        self.fetches = []


    def setProperty(self, principal, name, value):
        self.properties.setdefault(principal.uid, {})[name] = value


    def provision(self, principal, home, availability=None):
        """
        Give C{principal} a calendar home and an inbox.
        """
        self.setProperty(principal, CalendarHomeSetProperty, home)
        self.setProperty(principal, ScheduleInboxURLProperty, "/calendars/%s/inbox/" % (principal.uid,))
        if availability is not None:
            self.setProperty(principal, CalendarAvailabilityProperty, availability)


    def fetchProperties(self, principal, names):
        self.fetches.append((principal.uid, tuple(names)))
        props = self.properties.get(principal.uid, {})
        return succeed(dict([(name, props.get(name, PropertyState.absent)) for name in names]))



class FakeCalendar(object):

    def __init__(self, name, objects=(), transparency=Transparency.opaque, tzinfo=None):
        self.name = name
        self.objects = list(objects)
        self.transparency = transparency
        self.tzinfo = tzinfo


    def __repr__(self):
        return "<FakeCalendar %s>" % (self.name,)



@implementer(ICalendarStore)
class FakeCalendarStore(object):
    """
    Calendars keyed by home URL. The time range query returns every object of
    a calendar and leaves the filtering to instance expansion.
    """

    def __init__(self, homes=None):
        self.homes = homes if homes is not None else {}
        self.queries = []


    def addCalendar(self, home, calendar):
        self.homes.setdefault(home, []).append(calendar)


    def calendarsInHome(self, home):
        return succeed(list(self.homes.get(home, [])))


    def calendarTransparency(self, calendar):
        return succeed(calendar.transparency)


    def calendarTimezone(self, calendar):
        return succeed(calendar.tzinfo)


    def calendarObjectsInTimeRange(self, calendar, start, end):
        self.queries.append((calendar.name, start, end))
        return succeed(list(calendar.objects))



@implementer(IRequester)
class FakeRequester(object):

    def __init__(self, principal):
        self.principal = principal


    def requesterPrincipal(self):
        return succeed(self.principal)



@implementer(IAccessControl)
class FakeAccessControl(object):
    """
    Grants access to everything except the target UIDs in C{denied}.
    """

    def __init__(self, denied=()):
        self.denied = set(denied)


    def authorize(self, requester, target):
        return succeed(target.uid not in self.denied)



@implementer(IScheduleOutbox)
class FakeOutbox(object):
    pass



# Calendar data shared by the free busy tests

def calendarText(*lines):
    return "\r\n".join(lines) + "\r\n"


def eventObject(*lines):
    """
    A calendar object holding one VEVENT with the given property lines.
    """
    return calendarText(*(
        ("BEGIN:VCALENDAR", "VERSION:2.0", "PRODID:-//Example Corp.//Test//EN", "BEGIN:VEVENT")
        + lines
        + ("END:VEVENT", "END:VCALENDAR")
    ))


# Floating 13:00 event, 12:00Z in Europe/Berlin
opaqueEventData = calendarText(
    "BEGIN:VCALENDAR",
    "BEGIN:VEVENT",
    "DTSTART:20110101T130000",
    "DURATION:PT1H",
    "END:VEVENT",
    "END:VCALENDAR",
)

# Floating 08:00 event, only ever stored on a transparent calendar
transparentEventData = calendarText(
    "BEGIN:VCALENDAR",
    "BEGIN:VEVENT",
    "DTSTART:20110101T080000",
    "DURATION:PT1H",
    "END:VEVENT",
    "END:VCALENDAR",
)

# Available 09:00Z to 17:00Z on 2011-01-01
availabilityData = calendarText(
    "BEGIN:VCALENDAR",
    "BEGIN:VAVAILABILITY",
    "DTSTART:20110101T000000Z",
    "DTEND:20110102T000000Z",
    "BEGIN:AVAILABLE",
    "DTSTART:20110101T090000Z",
    "DTEND:20110101T170000Z",
    "END:AVAILABLE",
    "END:VAVAILABILITY",
    "END:VCALENDAR",
)
