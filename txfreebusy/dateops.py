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
Date/time Utilities

All periods handled here are half-open C{[start, end)} ranges of timezone
aware C{datetime}s normalized to UTC.
"""

__all__ = [
    "utc",
    "Period",
    "normalizeToUTC",
    "timeRangesOverlap",
    "normalizePeriodList",
    "clipPeriod",
    "invertPeriodList",
    "subtractPeriodList",
]

from collections import namedtuple
import datetime

import dateutil.tz

utc = dateutil.tz.tzutc()

_textFormat = "%Y%m%dT%H%M%SZ"


class Period(namedtuple("Period", ("start", "end",))):
    """
    A UTC time period.
    """

    __slots__ = ()

    @classmethod
    def parseText(cls, text):
        """
        Parse an iCalendar UTC period of the form C{start/end}.
        """
        start, end = text.split("/")
        return cls(parseUTCDateTime(start), parseUTCDateTime(end))


    def getText(self):
        return "%s/%s" % (self.start.strftime(_textFormat), self.end.strftime(_textFormat),)



def parseUTCDateTime(text):
    """
    Parse an iCalendar UTC date-time value (e.g. C{20080601T120000Z}).
    """
    return datetime.datetime.strptime(text, _textFormat).replace(tzinfo=utc)



def normalizeToUTC(dt, tzinfo=None):
    """
    Normalize a C{date} or C{datetime} to a UTC C{datetime}.

    @param dt: the value to normalize
    @param tzinfo: the timezone applied to floating values and dates,
        UTC if C{None}
    @return: the normalized C{datetime}
    """
    if not isinstance(dt, datetime.date):
        raise TypeError("%r is not a date or datetime instance" % (dt,))

    if tzinfo is None:
        tzinfo = utc

    if not isinstance(dt, datetime.datetime):
        dt = datetime.datetime(dt.year, dt.month, dt.day)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=tzinfo)
    return dt.astimezone(utc)



def timeRangesOverlap(start1, end1, start2, end2):
    # Note that start times are inclusive and end times are not.
    return start1 < end2 and end1 > start2



def normalizePeriodList(periods):
    """
    Normalize the list of periods by merging overlapping or consecutive ranges
    and sorting the list by each periods start.
    @param periods: a list of L{Period}. The list is changed in place.
    """

    periods.sort()

    # Now merge overlaps and consecutive periods
    merged = []
    for period in periods:
        if merged and period.start <= merged[-1].end:
            if period.end > merged[-1].end:
                merged[-1] = Period(merged[-1].start, period.end)
        else:
            merged.append(period)
    periods[:] = merged



def clipPeriod(period, clipPeriod):
    """
    Clip the start/end period so that it lies entirely within the clip period.
    @param period: the L{Period} to be clipped.
    @param clipPeriod: the L{Period} to clip to.
    @return: the clipped L{Period}, or C{None} if the period is outside the
        clip period or has no duration left
    """
    start = max(period.start, clipPeriod.start)
    end = min(period.end, clipPeriod.end)

    if start >= end:
        return None
    else:
        return Period(start, end)



def invertPeriodList(periods, within):
    """
    Return the gaps between the supplied periods inside C{within}.

    @param periods: normalized list of L{Period}
    @param within: the L{Period} to invert over
    @return: sorted list of L{Period}
    """
    gaps = []
    last_end = within.start
    for period in periods:
        clipped = clipPeriod(period, within)
        if clipped is None:
            continue
        if last_end < clipped.start:
            gaps.append(Period(last_end, clipped.start))
        last_end = max(last_end, clipped.end)
    if last_end < within.end:
        gaps.append(Period(last_end, within.end))
    return gaps



def subtractPeriodList(periods, remove):
    """
    Remove the time covered by C{remove} from C{periods}, splitting any
    period that partially overlaps.

    @param periods: normalized list of L{Period}
    @param remove: normalized list of L{Period}
    @return: normalized list of L{Period}
    """
    result = []
    for period in periods:
        pieces = [period]
        for cut in remove:
            if cut.start >= period.end:
                break
            if cut.end <= period.start:
                continue
            remaining = []
            for piece in pieces:
                if not timeRangesOverlap(piece.start, piece.end, cut.start, cut.end):
                    remaining.append(piece)
                    continue
                if piece.start < cut.start:
                    remaining.append(Period(piece.start, cut.start))
                if cut.end < piece.end:
                    remaining.append(Period(cut.end, piece.end))
            pieces = remaining
        result.extend(pieces)
    return result
