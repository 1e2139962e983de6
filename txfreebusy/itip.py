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
iTIP request-status codes and the per-attendee outcomes of a free busy
request.

Every outcome status carries its own request-status text, so the response
assembler renders each kind of outcome the same way.
"""

__all__ = [
    "iTIPRequestStatus",
    "AttendeeOutcome",
    "Success",
    "PrincipalNotFound",
    "NoCalendarHome",
    "NoInboxFound",
    "NoAuthority",
    "TooManyAttendees",
    "OtherFailure",
]

from collections import namedtuple


class iTIPRequestStatus(object):
    """
    String constants for various iTIP status codes we use.
    """

    SUCCESS_CODE = "2.0"

    INVALID_CALENDAR_USER_CODE = "3.7"
    NO_AUTHORITY_CODE = "3.8"

    BAD_REQUEST_CODE = "5.0"
    SERVICE_UNAVAILABLE_CODE = "5.1"

    SUCCESS = SUCCESS_CODE + ";Success"

    NO_USER = INVALID_CALENDAR_USER_CODE + ";Could not find principal"
    NO_CALENDAR_HOME = INVALID_CALENDAR_USER_CODE + ";No calendar-home-set property found"
    NO_INBOX = INVALID_CALENDAR_USER_CODE + ";No schedule-inbox-URL property found"
    NO_AUTHORITY = NO_AUTHORITY_CODE + ";No authority"

    TOO_MANY_ATTENDEES = SERVICE_UNAVAILABLE_CODE + ";Too many attendees"



class _Status(object):
    """
    Base class of attendee outcome statuses.
    """

    reqstatus = None

    def isSuccess(self):
        return False


    def __eq__(self, other):
        return type(self) is type(other) and self.__dict__ == other.__dict__


    def __ne__(self, other):
        return not self.__eq__(other)

    __hash__ = None


    def __repr__(self):
        return "<%s %s>" % (self.__class__.__name__, self.reqstatus)



class Success(_Status):
    """
    Free busy was computed. C{fbresult} is the VCALENDAR object to return.
    """

    reqstatus = iTIPRequestStatus.SUCCESS

    def __init__(self, fbresult):
        self.fbresult = fbresult


    def isSuccess(self):
        return True



class PrincipalNotFound(_Status):
    reqstatus = iTIPRequestStatus.NO_USER



class NoCalendarHome(_Status):
    reqstatus = iTIPRequestStatus.NO_CALENDAR_HOME



class NoInboxFound(_Status):
    reqstatus = iTIPRequestStatus.NO_INBOX



class NoAuthority(_Status):
    reqstatus = iTIPRequestStatus.NO_AUTHORITY



class TooManyAttendees(_Status):
    reqstatus = iTIPRequestStatus.TOO_MANY_ATTENDEES



class OtherFailure(_Status):
    """
    Any other failure. A C{"timeout"} detail maps to 5.1, everything else to
    5.0 with the detail as its text.
    """

    TIMEOUT = "timeout"
    INTERNAL = "Internal error"

    def __init__(self, detail):
        self.detail = detail


    @property
    def reqstatus(self):
        if self.detail == self.TIMEOUT:
            return "%s;%s" % (iTIPRequestStatus.SERVICE_UNAVAILABLE_CODE, self.detail,)
        return "%s;%s" % (iTIPRequestStatus.BAD_REQUEST_CODE, self.detail,)



class AttendeeOutcome(namedtuple("AttendeeOutcome", ("address", "status",))):
    """
    The result for one attendee: the C{address} exactly as it appeared in
    the request and a status instance.
    """

    __slots__ = ()
