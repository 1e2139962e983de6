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
twisted.web resource exposing free busy scheduling on an outbox URL.
"""

__all__ = [
    "ScheduleOutboxResource",
]

from twisted.logger import Logger
from twisted.web import http
from twisted.web.resource import Resource
from twisted.web.server import NOT_DONE_YET
from zope.interface import implementer

from txfreebusy.http import HTTPError, StatusResponse
from txfreebusy.icalendarstore import IScheduleOutbox

log = Logger()


@implementer(IScheduleOutbox)
class ScheduleOutboxResource(Resource):
    """
    A scheduling outbox accepting VFREEBUSY POSTs.
    """

    isLeaf = True

    def __init__(self, schedulerFactory):
        """
        @param schedulerFactory: callable taking the twisted.web request and
            returning the L{FreeBusyScheduler} that handles it.
        """
        Resource.__init__(self)
        self.schedulerFactory = schedulerFactory


    def render_POST(self, request):
        """
        Run the posted free busy request and write the schedule-response.
        """

        scheduler = self.schedulerFactory(request)
        contentType = request.getHeader(b"content-type")
        if contentType is not None:
            contentType = contentType.decode("latin-1")
        body = request.content.read()

        state = {"done": False, "disconnected": False}

        def onDisconnect(failure):
            state["disconnected"] = True
            if not state["done"]:
                log.info("Client disconnected, cancelling free busy request")
                scheduler.cancel()

        request.notifyFinish().addErrback(onDisconnect)

        def onSuccess(response):
            if response is None:
                # Not a free busy request
                response = StatusResponse(http.UNSUPPORTED_MEDIA_TYPE, "Only text/calendar free busy requests are supported")
            return response

        def onError(failure):
            if failure.check(HTTPError):
                return failure.value.response
            log.error("Free busy request failed: {ex}", ex=failure.value)
            return StatusResponse(http.INTERNAL_SERVER_ERROR, "Free busy request failed")

        def writeResponse(response):
            state["done"] = True
            if not state["disconnected"]:
                self.writeResponse(request, response)

        d = scheduler.doSchedulingViaPOST(self, contentType, body)
        d.addCallbacks(onSuccess, onError)
        d.addCallback(writeResponse)
        return NOT_DONE_YET


    def writeResponse(self, request, response):
        request.setResponseCode(response.code)
        for name, values in response.headers.getAllRawHeaders():
            request.responseHeaders.setRawHeaders(name, values)
        request.write(response.stream)
        request.finish()
