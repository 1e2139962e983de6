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
iCalendar Recurrence Expansion Utilities
"""

__all__ = [
    "TooManyInstancesError",
    "Instance",
    "InstanceList",
    "expandCalendarData",
    "expandComponents",
]

from collections import namedtuple
import datetime

from dateutil.rrule import rruleset, rrulestr
from icalendar import Calendar
from icalendar.prop import vRecur

from txfreebusy.config import config
from txfreebusy.dateops import timeRangesOverlap, utc


class TooManyInstancesError(Exception):

    def __init__(self, max_allowed):
        Exception.__init__(self, "Too many instances (maximum %s)" % (max_allowed,))
        self.max_allowed = max_allowed


    def __repr__(self):
        return "<%s max:%s>" % (self.__class__.__name__, self.max_allowed)



class Instance(namedtuple("Instance", ("start", "end", "component",))):
    """
    A single occurrence of a component, with UTC start and end.
    """

    __slots__ = ()

    def isDateOnly(self):
        dtstart = self.component.get("DTSTART")
        return dtstart is not None and not isinstance(dtstart.dt, datetime.datetime)



def localize(dt, tzinfo):
    """
    Attach C{tzinfo} to a naive C{datetime}, honoring pytz zones.
    """
    if hasattr(tzinfo, "localize"):
        return tzinfo.localize(dt)
    return dt.replace(tzinfo=tzinfo)



def _decodedValue(component, name, types):
    """
    Decode property C{name} of C{component}, which must be one of C{types}.

    @raise ValueError: if the value cannot be parsed.
    """
    value = component.decoded(name)
    if not isinstance(value, types):
        raise ValueError("Invalid %s value in %s: %r" % (name, component.name, value,))
    return value



def _asDateTime(value):
    if isinstance(value, datetime.datetime):
        return value
    return datetime.datetime(value.year, value.month, value.day)



class InstanceList(object):

    def __init__(self, tzinfo=None, maxInstances=None):
        """
        @param tzinfo: timezone used for floating and date values, UTC if C{None}
        @param maxInstances: limit on the number of instances, or C{None} to
            use C{config.MaxAllowedInstances}
        """
        self.instances = {}
        self.tzinfo = tzinfo if tzinfo is not None else utc
        self.maxInstances = config.MaxAllowedInstances if maxInstances is None else maxInstances


    def __iter__(self):
        # Return keys in sorted order via iterator
        for i in sorted(self.instances.keys()):
            yield i


    def __getitem__(self, key):
        return self.instances[key]


    def __len__(self):
        return len(self.instances)


    def expandTimeRanges(self, componentSet, limit, lowerLimit=None):
        """
        Expand the set of recurrence instances up to the specified date limit.
        What we do is first expand the master instance into the set of generated
        instances. Then we merge the overridden instances.

        @param componentSet: the set of components that are to make up the
            recurrence set. These MUST all be components with the same UID
            and type, forming a proper recurring set.
        @param limit: UTC C{datetime} for the end of the expansion.
        @param lowerLimit: UTC C{datetime} for the start of the expansion.
        """

        overrides = []
        for component in componentSet:
            if "RECURRENCE-ID" in component:
                overrides.append(component)
            else:
                self._addMasterComponent(component, lowerLimit, limit)

        for component in overrides:
            self._addOverrideComponent(component, lowerLimit, limit)


    def addInstance(self, instance, key=None):
        """
        Add the supplied instance to the map.
        """
        self.instances[instance.start if key is None else key] = instance

        # Check for too many instances
        if self.maxInstances and len(self.instances) > self.maxInstances:
            raise TooManyInstancesError(self.maxInstances)


    def _getMasterDetails(self, component):
        """
        Logic here comes from RFC4791 Section 9.9
        """

        if "DTSTART" not in component:
            return None
        start = _decodedValue(component, "DTSTART", datetime.date)

        if "DTEND" in component:
            end = _decodedValue(component, "DTEND", datetime.date)
        elif "DURATION" in component:
            end = start + _decodedValue(component, "DURATION", datetime.timedelta)
        elif isinstance(start, datetime.datetime):
            # Timed event with zero duration
            end = start
        else:
            # All day event default duration is one day
            end = start + datetime.timedelta(days=1)

        if isinstance(start, datetime.datetime) and start.tzinfo is not None:
            tzinfo = start.tzinfo
        else:
            tzinfo = self.tzinfo

        naiveStart = self._toLocal(start, tzinfo)
        naiveEnd = self._toLocal(end, tzinfo)
        return (naiveStart, naiveEnd - naiveStart, tzinfo,)


    def _toLocal(self, value, tzinfo, endOfDay=False):
        """
        Convert a C{date} or C{datetime} to a naive wall-clock C{datetime}
        in C{tzinfo}.
        """
        if isinstance(value, tuple):
            # RDATE period - only the start matters here
            value = value[0]
        if not isinstance(value, datetime.datetime):
            value = _asDateTime(value)
            if endOfDay:
                value = value.replace(hour=23, minute=59, second=59)
            return value
        if value.tzinfo is not None:
            value = value.astimezone(tzinfo)
        return value.replace(tzinfo=None)


    def _toUTC(self, naive, tzinfo):
        return localize(naive, tzinfo).astimezone(utc)


    def _dateValues(self, component, name):
        props = component.get(name)
        if props is None:
            return []
        if not isinstance(props, list):
            props = [props]
        return [value.dt for prop in props for value in prop.dts]


    def _makeRule(self, rrule, naiveStart, tzinfo):
        rule = vRecur(dict(rrule))
        until = rule.get("UNTIL")
        if until:
            rule["UNTIL"] = [self._toLocal(until[0], tzinfo, endOfDay=True)]
        return rrulestr(rule.to_ical().decode("utf-8"), dtstart=naiveStart)


    def _addMasterComponent(self, component, lowerLimit, upperLimit):
        """
        Add the specified master component to the instance list, expanding it
        within the supplied time range.
        """
        details = self._getMasterDetails(component)
        if details is None:
            return
        naiveStart, duration, tzinfo = details

        rules = component.get("RRULE")
        if rules is None and "RDATE" not in component:
            self._addInstance(component, naiveStart, duration, tzinfo, lowerLimit, upperLimit)
            return

        rset = rruleset()
        rset.rdate(naiveStart)
        if rules is not None:
            for rule in (rules if isinstance(rules, list) else [rules]):
                rset.rrule(self._makeRule(rule, naiveStart, tzinfo))
        for rdate in self._dateValues(component, "RDATE"):
            rset.rdate(self._toLocal(rdate, tzinfo))
        for exdate in self._dateValues(component, "EXDATE"):
            rset.exdate(self._toLocal(exdate, tzinfo))

        upper = self._toLocal(upperLimit, tzinfo)
        if lowerLimit is not None:
            lower = self._toLocal(lowerLimit, tzinfo) - duration
        else:
            lower = naiveStart
        count = 0
        for occurrence in rset.between(lower, upper, inc=True):
            count += 1
            if self.maxInstances and count > self.maxInstances:
                raise TooManyInstancesError(self.maxInstances)
            self._addInstance(component, occurrence, duration, tzinfo, lowerLimit, upperLimit)


    def _addInstance(self, component, naiveStart, duration, tzinfo, lowerLimit, upperLimit, key=None):
        start = self._toUTC(naiveStart, tzinfo)
        end = self._toUTC(naiveStart + duration, tzinfo)
        if start >= upperLimit:
            return
        if lowerLimit is not None and not timeRangesOverlap(start, end, lowerLimit, upperLimit):
            return
        self.addInstance(Instance(start, end, component), key)


    def _addOverrideComponent(self, component, lowerLimit, upperLimit):
        """
        Replace the generated instance matching the RECURRENCE-ID of C{component}
        with C{component}'s own timing.
        """
        details = self._getMasterDetails(component)
        if details is None:
            return
        naiveStart, duration, tzinfo = details

        rid = _decodedValue(component, "RECURRENCE-ID", datetime.date)
        ridtz = rid.tzinfo if isinstance(rid, datetime.datetime) and rid.tzinfo is not None else tzinfo
        key = self._toUTC(self._toLocal(rid, ridtz), ridtz)

        # The override may lie outside the expanded range, in which case there
        # is nothing to replace
        self.instances.pop(key, None)
        self._addInstance(component, naiveStart, duration, tzinfo, lowerLimit, upperLimit, key=key)



def expandComponents(components, timerange, tzinfo=None, maxInstances=None):
    """
    Expand a list of components, grouping them by UID into recurrence sets.

    @param components: iCalendar components of one type
    @param timerange: the L{Period} to expand within
    @param tzinfo: timezone for floating values
    @return: L{list} of L{Instance} sorted by start
    """

    # First we need to group all components by UID
    uidmap = {}
    for component in components:
        uidmap.setdefault(component.get("UID"), []).append(component)

    # Then we expand each uid set separately
    results = []
    for componentSet in uidmap.values():
        instances = InstanceList(tzinfo, maxInstances=maxInstances)
        instances.expandTimeRanges(componentSet, timerange.end, lowerLimit=timerange.start)
        results.extend([instances[key] for key in instances])

    results.sort(key=lambda instance: (instance.start, instance.end))
    return results



def expandCalendarData(data, timerange, tzinfo=None):
    """
    Parse iCalendar text and return every VEVENT occurrence overlapping
    C{timerange}.

    @param data: the calendar object text
    @type data: L{str} or L{bytes}
    @param timerange: the L{Period} to expand within
    @param tzinfo: timezone for floating values
    @return: L{list} of L{Instance}
    @raise ValueError: if the data is not a valid calendar object
    """
    calendar = Calendar.from_ical(data)
    if calendar.name != "VCALENDAR":
        raise ValueError("Top-level component is not a calendar: %s" % (calendar.name,))
    return expandComponents(
        [component for component in calendar.subcomponents if component.name == "VEVENT"],
        timerange,
        tzinfo,
    )
