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
Interfaces of the collaborators used by the free busy engine: the principal
directory, the property substrate, the calendar store, the authenticated
requester and access control.
"""

__all__ = [
    # Interfaces
    "IPrincipal",
    "IPrincipalDirectory",
    "IPropertyLookup",
    "ICalendarStore",
    "IRequester",
    "IAccessControl",
    "IScheduleOutbox",

    # Exceptions
    "QueryMaxResources",

    # Constants
    "PropertyState",
    "Transparency",
    "CalendarHomeSetProperty",
    "ScheduleInboxURLProperty",
    "CalendarAvailabilityProperty",
]

from constantly import NamedConstant, Names
from zope.interface import Attribute, Interface

from txfreebusy.caldavxml import caldav_namespace


CalendarHomeSetProperty = (caldav_namespace, "calendar-home-set")
ScheduleInboxURLProperty = (caldav_namespace, "schedule-inbox-URL")
CalendarAvailabilityProperty = (caldav_namespace, "calendar-availability")



#
# Interfaces
#

class IPrincipal(Interface):
    """
    A calendar user principal.
    """

    uid = Attribute("The directory UID of the principal.")
    principalURL = Attribute("The URL of the principal resource.")
    calendarUserAddresses = Attribute(
        "The ordered sequence of calendar user addresses of the principal."
    )



class IPrincipalDirectory(Interface):
    """
    Directory of calendar user principals.
    """

    def principalsWithCalendarUserAddress(address): #@NoSelf
        """
        Search for principals having C{address} among their calendar user
        addresses.

        @param address: the calendar user address to search for.
        @type address: L{str}

        @return: a L{Deferred} which fires with a L{list} of L{IPrincipal},
            in the directory's own order.
        """



class IPropertyLookup(Interface):
    """
    Access to the WebDAV properties of principal resources.
    """

    def fetchProperties(principal, names): #@NoSelf
        """
        Look up several properties of a principal in one batch.

        @param principal: the principal to look up.
        @type principal: L{IPrincipal}
        @param names: the property names to fetch, as C{(namespace, name)}
            tuples.
        @type names: L{list}

        @return: a L{Deferred} which fires with a L{dict} mapping each name
            to its value, L{PropertyState.absent} or L{PropertyState.denied}.
        """



class ICalendarStore(Interface):
    """
    Read access to the calendars in a calendar home.
    """

    def calendarsInHome(home): #@NoSelf
        """
        @return: a L{Deferred} which fires with the L{list} of calendars
            directly under C{home}.
        """


    def calendarTransparency(calendar): #@NoSelf
        """
        @return: a L{Deferred} which fires with the L{Transparency} of the
            calendar's schedule-calendar-transp setting.
        """


    def calendarTimezone(calendar): #@NoSelf
        """
        @return: a L{Deferred} which fires with the C{tzinfo} used for floating
            times in C{calendar}, or C{None} for UTC.
        """


    def calendarObjectsInTimeRange(calendar, start, end): #@NoSelf
        """
        Query the calendar objects overlapping C{[start, end)}.

        @return: a L{Deferred} which fires with a L{list} of iCalendar texts.
        """



class IRequester(Interface):
    """
    The authenticated identity of the current HTTP request.
    """

    def requesterPrincipal(): #@NoSelf
        """
        @return: a L{Deferred} which fires with the L{IPrincipal} making the
            request, or C{None} if the request is unauthenticated.
        """



class IAccessControl(Interface):
    """
    Free busy access policy.
    """

    def authorize(requester, target): #@NoSelf
        """
        Decide whether C{requester} may query the free busy of C{target}.

        @type requester: L{IPrincipal}
        @type target: L{IPrincipal}
        @return: a L{Deferred} which fires with a L{bool}.
        """



class IScheduleOutbox(Interface):
    """
    Marker for a scheduling outbox resource, the only valid target of a
    free busy POST.
    """



#
# Exceptions
#

class QueryMaxResources(Exception):
    """
    A query-based request for resources returned more resources than the server is willing to deal with in one go.
    """

    def __init__(self, limit, actual):
        super(QueryMaxResources, self).__init__("Query result count limit (%s) exceeded: %s" % (limit, actual,))



#
# Constants
#

class PropertyState(Names):
    """
    Outcomes of a property lookup that do not carry a value.

    absent - the property is not defined on the resource.

    denied - the requester may not read the property.
    """

    absent = NamedConstant()
    denied = NamedConstant()



class Transparency(Names):
    """
    The schedule-calendar-transp setting of a calendar. Only opaque
    calendars contribute to free busy.
    """

    opaque = NamedConstant()
    transparent = NamedConstant()
