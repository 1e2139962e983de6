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
CalDAV/Scheduling free busy handling.

L{FreeBusyScheduler} runs a VFREEBUSY request posted to an outbox: it
validates the request, looks up every attendee in parallel and returns a
CALDAV:schedule-response with one response per attendee.
"""

__all__ = [
    "DefaultAccessControl",
    "ScheduleResponseResponse",
    "ScheduleResponseQueue",
    "FreeBusyScheduler",
]

from collections import namedtuple

from twisted.internet.defer import CancelledError, DeferredList, \
    DeferredSemaphore, TimeoutError, inlineCallbacks, succeed
from twisted.logger import Logger
from twisted.web import http
from zope.interface import implementer

from txfreebusy import caldavxml
from txfreebusy.caldavxml import caldav_namespace
from txfreebusy.config import config as stdconfig
from txfreebusy.cuaddress import PrincipalResolver
from txfreebusy.freebusy import FreebusyQuery, parseAvailability
from txfreebusy.http import ErrorResponse, HTTPError, XMLResponse
from txfreebusy.ical import buildFreeBusyResult, isCalendarContentType
from txfreebusy.icalendarstore import IAccessControl, IScheduleOutbox
from txfreebusy.instance import expandCalendarData
from txfreebusy.itip import AttendeeOutcome, NoAuthority, OtherFailure, \
    PrincipalNotFound, Success, TooManyAttendees
from txfreebusy.locator import ScheduleResourceLocator, ScheduleResources
from txfreebusy.request import SchedulingRequestError, UnsupportedMediaType, \
    parseSchedulingRequest

log = Logger()


@implementer(IAccessControl)
class DefaultAccessControl(object):
    """
    Free busy access policy: administrators may always query free busy,
    other principals get C{Scheduling.Options.FreeBusy.DefaultAccess}.
    """

    def __init__(self, configuration=None):
        self.config = configuration if configuration is not None else stdconfig


    def authorize(self, requester, target):
        admins = set(self.config.AdminPrincipals)
        if requester.principalURL in admins or requester.uid in admins:
            return succeed(True)
        return succeed(self.config.Scheduling.Options.FreeBusy.DefaultAccess == "allow")



class ScheduleResponseResponse(XMLResponse):
    """
    ScheduleResponse L{Response} object.
    Renders itself as a CalDAV:schedule-response XML document.
    """

    def __init__(self, schedule_response_element, xml_responses):
        """
        @param xml_responses: an iterable of caldavxml.Response objects.
        """
        XMLResponse.__init__(self, http.OK, schedule_response_element(*xml_responses))



class ScheduleResponseQueue(object):
    """
    Stores a list of per-recipient responses for use in a
    L{ScheduleResponseResponse}.
    """

    schedule_response_element = caldavxml.ScheduleResponse
    response_element = caldavxml.Response
    recipient_element = caldavxml.Recipient
    request_status_element = caldavxml.RequestStatus
    calendar_data_element = caldavxml.CalendarData

    ScheduleResponseDetails = namedtuple(
        "ScheduleResponseDetails",
        ["recipient", "reqstatus", "calendar", ]
    )

    def __init__(self, method):
        """
        @param method: the name of the method generating the queue.
        """
        self.responses = []
        self.method = method


    def add(self, recipient, status):
        """
        Add a response.
        @param recipient: the recipient address for this response.
        @param status: the outcome status for the given recipient.
        """
        if not status.isSuccess():
            log.debug(
                "{method} response for {recipient}: {reqstatus}",
                method=self.method, recipient=recipient, reqstatus=status.reqstatus,
            )

        details = ScheduleResponseQueue.ScheduleResponseDetails(
            self.recipient_element(caldavxml.HRef.fromString(recipient)),
            self.request_status_element.fromString(status.reqstatus),
            status.fbresult if status.isSuccess() else None,
        )
        self.responses.append(details)


    def response(self):
        """
        Generate a L{ScheduleResponseResponse} with the responses contained in
        the queue.
        @return: the response.
        """
        # Convert our queue to all XML elements
        xml_responses = []
        for response in self.responses:
            children = []
            children.append(response.recipient)
            children.append(response.reqstatus)
            if response.calendar is not None:
                children.append(self.calendar_data_element.fromCalendar(response.calendar))
            xml_responses.append(self.response_element(*children))

        return ScheduleResponseResponse(self.schedule_response_element, xml_responses)



class FreeBusyScheduler(object):
    """
    Handles a VFREEBUSY scheduling POST for one HTTP request.
    """

    def __init__(
        self, directory, properties, store, requester,
        accessControl=None, expander=expandCalendarData, clock=None, configuration=None,
    ):
        """
        @param directory: principal directory used to resolve attendees.
        @type directory: L{IPrincipalDirectory}
        @param properties: property lookup for principal resources.
        @type properties: L{IPropertyLookup}
        @param store: calendar store holding attendee calendars.
        @type store: L{ICalendarStore}
        @param requester: the authenticated identity of the request.
        @type requester: L{IRequester}
        @param accessControl: free busy access policy, L{DefaultAccessControl}
            if C{None}.
        @type accessControl: L{IAccessControl}
        @param expander: calendar object expansion, see L{expandCalendarData}.
        @param clock: provider of timeouts, the reactor if C{None}.
        @type clock: L{IReactorTime}
        @param configuration: the L{Config} to use, the global one if C{None}.
        """
        self.config = configuration if configuration is not None else stdconfig
        self.directory = directory
        self.properties = properties
        self.store = store
        self.requester = requester
        self.accessControl = accessControl if accessControl is not None else DefaultAccessControl(self.config)
        self.expander = expander
        if clock is None:
            from twisted.internet import reactor as clock
        self.clock = clock

        self.locator = ScheduleResourceLocator(properties)
        self.outstanding = []


    @inlineCallbacks
    def doSchedulingViaPOST(self, target, contentType, data):
        """
        The Scheduling POST operation on an Outbox.

        @param target: the resource the request was posted to.
        @param contentType: the Content-Type header value of the request.
        @param data: the request body.
        @return: a L{Deferred} firing with the L{ScheduleResponseResponse},
            or C{None} if the request is not a free busy request for this
            handler.
        @raise HTTPError: if the request is rejected.
        """

        if target is None or not IScheduleOutbox.providedBy(target):
            log.debug("POST target is not a scheduling outbox: {target}", target=target)
            return None

        if not isCalendarContentType(contentType):
            log.debug("POST Content-Type is not text/calendar: {ct}", ct=contentType)
            return None

        requester = yield self.requester.requesterPrincipal()
        if requester is None:
            log.error("Unauthenticated free busy request")
            raise HTTPError(ErrorResponse(
                http.FORBIDDEN,
                (caldav_namespace, "organizer-allowed"),
                "Authentication required",
            ))

        try:
            request = parseSchedulingRequest(data, contentType, requester.calendarUserAddresses)
        except UnsupportedMediaType:
            return None
        except SchedulingRequestError as e:
            log.error(
                "Rejected free busy request from {requester}: {ex}",
                requester=requester.principalURL, ex=e,
            )
            raise e.httpError()

        log.debug(
            "Free busy request from {organizer} for {count} attendee(s) in {timerange}",
            organizer=request.organizer, count=len(request.attendees), timerange=request.timerange.getText(),
        )

        outcomes = yield self.generateAttendeeOutcomes(request, requester)

        queue = ScheduleResponseQueue("POST")
        for outcome in outcomes:
            queue.add(outcome.address, outcome.status)

        log.info(
            "Free busy request from {organizer}: {success} of {count} attendee(s) succeeded",
            organizer=request.organizer,
            success=len([outcome for outcome in outcomes if outcome.status.isSuccess()]),
            count=len(outcomes),
        )
        return queue.response()


    @inlineCallbacks
    def generateAttendeeOutcomes(self, request, requester):
        """
        Run the per-attendee lookups with bounded concurrency.

        @return: a L{Deferred} firing with a L{list} of L{AttendeeOutcome},
            one per attendee in request order.
        """

        options = self.config.Scheduling.Options
        limit = options.LimitFreeBusyAttendees
        semaphore = DeferredSemaphore(max(1, options.FreeBusy.MaxConcurrentAttendees))
        resolver = PrincipalResolver(self.directory)

        slots = [None] * len(request.attendees)
        pending = []
        for index, (address, attendeeProp) in enumerate(zip(request.attendees, request.attendeeProps)):
            if limit and index >= limit:
                slots[index] = AttendeeOutcome(address, TooManyAttendees())
                continue

            d = semaphore.run(self._timedAttendee, request, requester, resolver, address, attendeeProp)
            d.addErrback(self._attendeeFailed, address)
            d.addCallback(self._storeOutcome, slots, index)
            pending.append(d)

        self.outstanding.extend(pending)
        deadline = None
        if options.FreeBusy.RequestTimeoutSeconds:
            deadline = self.clock.callLater(options.FreeBusy.RequestTimeoutSeconds, self._deadlineExpired, pending)
        try:
            yield DeferredList(pending)
        finally:
            if deadline is not None and deadline.active():
                deadline.cancel()
            for d in pending:
                self.outstanding.remove(d)

        return slots


    def cancel(self):
        """
        Cancel all outstanding attendee lookups. Each one is reported as
        timed out.
        """
        for d in list(self.outstanding):
            d.cancel()


    def _timedAttendee(self, request, requester, resolver, address, attendeeProp):
        d = self.processAttendee(request, requester, resolver, address, attendeeProp)
        timeout = self.config.Scheduling.Options.FreeBusy.AttendeeTimeoutSeconds
        if timeout:
            d.addTimeout(timeout, self.clock)
        return d


    def _deadlineExpired(self, pending):
        log.info("Free busy request deadline expired, cancelling outstanding attendees")
        for d in pending:
            d.cancel()


    def _attendeeFailed(self, failure, address):
        if failure.check(CancelledError, TimeoutError):
            log.error("Free busy lookup for {attendee} timed out", attendee=address)
            status = OtherFailure(OtherFailure.TIMEOUT)
        else:
            log.error(
                "Free busy lookup for {attendee} failed: {ex}",
                attendee=address, ex=failure.value,
            )
            status = OtherFailure(OtherFailure.INTERNAL)
        return AttendeeOutcome(address, status)


    def _storeOutcome(self, outcome, slots, index):
        slots[index] = outcome
        return outcome


    @inlineCallbacks
    def processAttendee(self, request, requester, resolver, address, attendeeProp):
        """
        Resolve, authorize, locate and compute free busy for one attendee.

        @return: a L{Deferred} firing with an L{AttendeeOutcome}. Lookup
            failures are passed on as errbacks.
        """

        log.debug("Resolving attendee {attendee}", attendee=address)
        principal = yield resolver.resolve(address)
        if principal is None:
            return AttendeeOutcome(address, PrincipalNotFound())

        allowed = yield self.accessControl.authorize(requester, principal)
        if not allowed:
            log.debug(
                "{requester} may not query free busy of {attendee}",
                requester=requester.principalURL, attendee=address,
            )
            return AttendeeOutcome(address, NoAuthority())

        log.debug("Locating scheduling resources of {principal}", principal=principal.principalURL)
        resources = yield self.locator.locate(principal)
        if not isinstance(resources, ScheduleResources):
            return AttendeeOutcome(address, resources)

        availability = None
        if resources.availability is not None:
            availability = parseAvailability(resources.availability, request.timerange)

        log.debug("Computing free busy of {principal}", principal=principal.principalURL)
        query = FreebusyQuery(
            self.store,
            request.timerange,
            availability,
            self.expander,
            maxResults=self.config.MaxQueryWithDataResults,
        )
        intervals = yield query.generateFreeBusyInfo(resources.home)

        fbresult = buildFreeBusyResult(
            intervals,
            request.timerange,
            request.organizerProp,
            attendeeProp,
            request.uid,
        )
        return AttendeeOutcome(address, Success(fbresult))
