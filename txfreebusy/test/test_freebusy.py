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

import pytz

from twisted.internet.defer import inlineCallbacks

from txfreebusy.dateops import Period
from txfreebusy.freebusy import AVAILABILITY_END, AVAILABILITY_START, \
    BusyInterval, FreeBusyType, FreebusyQuery, parseAvailability
from txfreebusy.icalendarstore import QueryMaxResources, Transparency
from txfreebusy.test.util import FakeCalendar, FakeCalendarStore, TestCase, \
    availabilityData, calendarText, eventObject, opaqueEventData, \
    transparentEventData

home = "/calendars/user2/"
timerange = Period.parseText("20110101T080000Z/20110101T180000Z")


def interval(text, fbtype=FreeBusyType.BUSY):
    period = Period.parseText(text)
    return BusyInterval(period.start, period.end, fbtype)



class ParseAvailability(TestCase):
    """
    freebusy.parseAvailability tests
    """

    def test_window(self):
        windows = parseAvailability(availabilityData, timerange)
        self.assertEqual(len(windows), 1)
        self.assertEqual(windows[0].period, Period.parseText("20110101T000000Z/20110102T000000Z"))
        self.assertEqual(windows[0].available, [Period.parseText("20110101T090000Z/20110101T170000Z")])


    def test_unbounded(self):
        """
        A VAVAILABILITY without DTSTART or DTEND covers all time.
        """
        windows = parseAvailability(calendarText(
            "BEGIN:VCALENDAR",
            "BEGIN:VAVAILABILITY",
            "BEGIN:AVAILABLE",
            "UID:available-1",
            "DTSTART:20110101T090000Z",
            "DTEND:20110101T120000Z",
            "END:AVAILABLE",
            "BEGIN:AVAILABLE",
            "UID:available-2",
            "DTSTART:20110101T110000Z",
            "DTEND:20110101T170000Z",
            "END:AVAILABLE",
            "END:VAVAILABILITY",
            "END:VCALENDAR",
        ), timerange)
        self.assertEqual(windows[0].period, Period(AVAILABILITY_START, AVAILABILITY_END))
        self.assertEqual(windows[0].available, [Period.parseText("20110101T090000Z/20110101T170000Z")])


    def test_duration(self):
        windows = parseAvailability(calendarText(
            "BEGIN:VCALENDAR",
            "BEGIN:VAVAILABILITY",
            "DTSTART:20110101T000000Z",
            "DURATION:PT12H",
            "END:VAVAILABILITY",
            "END:VCALENDAR",
        ), timerange)
        self.assertEqual(windows[0].period, Period.parseText("20110101T000000Z/20110101T120000Z"))
        self.assertEqual(windows[0].available, [])



class GenerateFreeBusyInfo(TestCase):
    """
    freebusy.FreebusyQuery tests
    """

    def setUp(self):
        super(GenerateFreeBusyInfo, self).setUp()
        self.store = FakeCalendarStore()


    def query(self, availability=None, **kwargs):
        return FreebusyQuery(self.store, timerange, availability, **kwargs)


    @inlineCallbacks
    def test_noCalendars(self):
        result = yield self.query().generateFreeBusyInfo(home)
        self.assertEqual(result, [])


    @inlineCallbacks
    def test_transparentCalendar(self):
        """
        Floating events use the calendar timezone and transparent calendars
        are skipped without being queried.
        """
        self.store.addCalendar(home, FakeCalendar("calendar1", [opaqueEventData], tzinfo=pytz.timezone("Europe/Berlin")))
        self.store.addCalendar(home, FakeCalendar("calendar2", [transparentEventData], transparency=Transparency.transparent))

        result = yield self.query().generateFreeBusyInfo(home)
        self.assertEqual(result, [interval("20110101T120000Z/20110101T130000Z")])
        self.assertEqual([query[0] for query in self.store.queries], ["calendar1"])


    @inlineCallbacks
    def test_clipAndMerge(self):
        """
        Busy time is clipped to the range and merged across calendars.
        """
        self.store.addCalendar(home, FakeCalendar("calendar1", [
            eventObject("UID:1", "DTSTART:20110101T070000Z", "DTEND:20110101T090000Z"),
            eventObject("UID:2", "DTSTART:20110101T120000Z", "DTEND:20110101T130000Z"),
        ]))
        self.store.addCalendar(home, FakeCalendar("calendar3", [
            eventObject("UID:3", "DTSTART:20110101T123000Z", "DTEND:20110101T140000Z"),
            eventObject("UID:4", "DTSTART:20110101T170000Z", "DTEND:20110101T200000Z"),
            eventObject("UID:5", "DTSTART:20110101T200000Z", "DTEND:20110101T210000Z"),
        ]))

        result = yield self.query().generateFreeBusyInfo(home)
        self.assertEqual(result, [
            interval("20110101T080000Z/20110101T090000Z"),
            interval("20110101T120000Z/20110101T140000Z"),
            interval("20110101T170000Z/20110101T180000Z"),
        ])


    @inlineCallbacks
    def test_ignoredEvents(self):
        """
        Transparent, cancelled and all-day events do not block time,
        tentative ones do.
        """
        self.store.addCalendar(home, FakeCalendar("calendar1", [
            eventObject("UID:1", "DTSTART:20110101T090000Z", "DTEND:20110101T100000Z", "TRANSP:TRANSPARENT"),
            eventObject("UID:2", "DTSTART:20110101T100000Z", "DTEND:20110101T110000Z", "STATUS:CANCELLED"),
            eventObject("UID:3", "DTSTART;VALUE=DATE:20110101", "DTEND;VALUE=DATE:20110102"),
            eventObject("UID:4", "DTSTART:20110101T150000Z", "DTEND:20110101T160000Z", "STATUS:TENTATIVE"),
        ]))

        result = yield self.query().generateFreeBusyInfo(home)
        self.assertEqual(result, [interval("20110101T150000Z/20110101T160000Z")])


    @inlineCallbacks
    def test_recurring(self):
        self.store.addCalendar(home, FakeCalendar("calendar1", [
            eventObject("UID:1", "DTSTART:20110101T090000Z", "DTEND:20110101T093000Z", "RRULE:FREQ=HOURLY;INTERVAL=4"),
        ]))

        result = yield self.query().generateFreeBusyInfo(home)
        self.assertEqual(result, [
            interval("20110101T090000Z/20110101T093000Z"),
            interval("20110101T130000Z/20110101T133000Z"),
            interval("20110101T170000Z/20110101T173000Z"),
        ])


    @inlineCallbacks
    def test_invalidObjectSkipped(self):
        """
        A calendar object that cannot be parsed contributes nothing.
        """
        self.store.addCalendar(home, FakeCalendar("calendar1", [
            "BEGIN:VCALENDAR\r\nBEGIN:VEVENT\r\n",
            eventObject("UID:1", "DTSTART:20110101T150000Z", "DTEND:20110101T160000Z"),
        ]))

        result = yield self.query().generateFreeBusyInfo(home)
        self.assertEqual(result, [interval("20110101T150000Z/20110101T160000Z")])


    @inlineCallbacks
    def test_invalidValuesSkipped(self):
        """
        Objects with unparseable DTEND, DURATION or RECURRENCE-ID values are
        dropped without losing the busy time of other objects.
        """
        self.store.addCalendar(home, FakeCalendar("calendar1", [
            eventObject("UID:1", "DTSTART:20110101T140000Z", "DTEND:nope"),
            eventObject("UID:2", "DTSTART:20110101T140000Z", "DURATION:nope"),
            eventObject("UID:3", "RECURRENCE-ID:nope", "DTSTART:20110101T140000Z", "DTEND:20110101T150000Z"),
            eventObject("UID:4", "DTSTART:20110101T150000Z", "DTEND:20110101T160000Z"),
        ]))
        self.store.addCalendar(home, FakeCalendar("calendar2", [
            eventObject("UID:5", "DTSTART:20110101T090000Z", "DTEND:20110101T100000Z"),
        ]))

        result = yield self.query().generateFreeBusyInfo(home)
        self.assertEqual(result, [
            interval("20110101T090000Z/20110101T100000Z"),
            interval("20110101T150000Z/20110101T160000Z"),
        ])


    @inlineCallbacks
    def test_maxResults(self):
        self.store.addCalendar(home, FakeCalendar("calendar1", [opaqueEventData, opaqueEventData]))
        yield self.assertFailure(self.query(maxResults=1).generateFreeBusyInfo(home), QueryMaxResources)


    @inlineCallbacks
    def test_availability(self):
        """
        Time outside the AVAILABLE periods is reported as unavailable.
        """
        self.store.addCalendar(home, FakeCalendar("calendar1", [opaqueEventData], tzinfo=pytz.timezone("Europe/Berlin")))

        result = yield self.query(parseAvailability(availabilityData, timerange)).generateFreeBusyInfo(home)
        self.assertEqual(result, [
            interval("20110101T080000Z/20110101T090000Z", FreeBusyType.BUSY_UNAVAILABLE),
            interval("20110101T120000Z/20110101T130000Z"),
            interval("20110101T170000Z/20110101T180000Z", FreeBusyType.BUSY_UNAVAILABLE),
        ])


    @inlineCallbacks
    def test_busyDuringUnavailable(self):
        """
        Busy time wins over unavailable time.
        """
        self.store.addCalendar(home, FakeCalendar("calendar1", [
            eventObject("UID:1", "DTSTART:20110101T083000Z", "DTEND:20110101T084500Z"),
        ]))

        result = yield self.query(parseAvailability(availabilityData, timerange)).generateFreeBusyInfo(home)
        self.assertEqual(result, [
            interval("20110101T080000Z/20110101T083000Z", FreeBusyType.BUSY_UNAVAILABLE),
            interval("20110101T083000Z/20110101T084500Z"),
            interval("20110101T084500Z/20110101T090000Z", FreeBusyType.BUSY_UNAVAILABLE),
            interval("20110101T170000Z/20110101T180000Z", FreeBusyType.BUSY_UNAVAILABLE),
        ])


    @inlineCallbacks
    def test_availabilityOutsideRange(self):
        """
        An availability window that does not overlap the range adds nothing.
        """
        availability = parseAvailability(calendarText(
            "BEGIN:VCALENDAR",
            "BEGIN:VAVAILABILITY",
            "DTSTART:20110105T000000Z",
            "DTEND:20110106T000000Z",
            "END:VAVAILABILITY",
            "END:VCALENDAR",
        ), timerange)

        result = yield self.query(availability).generateFreeBusyInfo(home)
        self.assertEqual(result, [])
