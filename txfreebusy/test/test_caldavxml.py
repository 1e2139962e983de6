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

from xml.etree import ElementTree

from twisted.trial.unittest import TestCase
from twisted.web import http

from txfreebusy import caldavxml
from txfreebusy.caldavxml import caldav_namespace, dav_namespace
from txfreebusy.http import ErrorResponse, HTTPError, StatusResponse, \
    XMLResponse
from txfreebusy.ical import buildFreeBusyResult
from txfreebusy.dateops import Period


def scheduleResponse(*responses):
    return caldavxml.ScheduleResponse(*[
        caldavxml.Response(
            caldavxml.Recipient(caldavxml.HRef.fromString(href)),
            caldavxml.RequestStatus.fromString(reqstatus),
        )
        for href, reqstatus in responses
    ])



class CalDAVXML(TestCase):
    """
    caldavxml.py tests
    """

    def test_scheduleResponse(self):
        """
        A schedule-response serializes with the DAV: and CalDAV namespaces.
        """
        element = scheduleResponse(
            ("mailto:user02@example.com", "2.0;Success"),
            ("mailto:user03@example.com", "3.7;Could not find principal"),
        )
        xml = element.toxml()
        self.assertTrue(xml.startswith(b"<?xml"))

        root = ElementTree.fromstring(xml)
        self.assertEqual(root.tag, "{%s}schedule-response" % (caldav_namespace,))
        hrefs = [e.text for e in root.iter("{%s}href" % (dav_namespace,))]
        self.assertEqual(hrefs, ["mailto:user02@example.com", "mailto:user03@example.com"])
        statuses = [e.text for e in root.iter("{%s}request-status" % (caldav_namespace,))]
        self.assertEqual(statuses, ["2.0;Success", "3.7;Could not find principal"])


    def test_calendarData(self):
        calendar = buildFreeBusyResult([], Period.parseText("20110101T080000Z/20110101T180000Z"), uid="1234")
        element = caldavxml.CalendarData.fromCalendar(calendar)
        self.assertIn("UID:1234", str(element))
        self.assertIn("BEGIN:VFREEBUSY", str(element))


    def test_validation(self):
        """
        Required children and child counts are enforced.
        """
        self.assertRaises(ValueError, caldavxml.Recipient)
        self.assertRaises(
            ValueError,
            caldavxml.Recipient, caldavxml.HRef.fromString("/a"), caldavxml.HRef.fromString("/b"),
        )
        self.assertRaises(ValueError, caldavxml.Response, caldavxml.RequestStatus.fromString("2.0;Success"))
        self.assertRaises(ValueError, caldavxml.ScheduleResponse, caldavxml.HRef.fromString("/a"))


    def test_childOfType(self):
        response = caldavxml.Response(
            caldavxml.Recipient(caldavxml.HRef.fromString("mailto:user02@example.com")),
            caldavxml.RequestStatus.fromString("2.0;Success"),
        )
        self.assertEqual(str(response.childOfType(caldavxml.RequestStatus)), "2.0;Success")
        self.assertEqual(response.childOfType(caldavxml.CalendarData), None)


    def test_equality(self):
        self.assertEqual(caldavxml.HRef.fromString("/a"), caldavxml.HRef.fromString("/a"))
        self.assertNotEqual(caldavxml.HRef.fromString("/a"), caldavxml.HRef.fromString("/b"))



class Responses(TestCase):
    """
    http.py tests
    """

    def test_xmlResponse(self):
        response = XMLResponse(http.OK, scheduleResponse(("mailto:user02@example.com", "2.0;Success")))
        self.assertEqual(response.code, http.OK)
        self.assertEqual(response.headers.getRawHeaders(b"content-type"), [b"application/xml"])
        self.assertIn(b"2.0;Success", response.stream)


    def test_errorResponse(self):
        """
        An error tuple becomes an empty precondition element inside DAV:error.
        """
        response = ErrorResponse(http.FORBIDDEN, (caldav_namespace, "organizer-allowed"), "Not yours")
        self.assertEqual(response.code, http.FORBIDDEN)
        self.assertEqual(response.headers.getRawHeaders(b"content-type"), [b"application/xml"])

        root = ElementTree.fromstring(response.stream)
        self.assertEqual(root.tag, "{%s}error" % (dav_namespace,))
        self.assertNotEqual(root.find("{%s}organizer-allowed" % (caldav_namespace,)), None)
        self.assertIn(b"Not yours", response.stream)


    def test_statusResponse(self):
        response = StatusResponse(http.UNSUPPORTED_MEDIA_TYPE, "<b>text/plain</b>")
        self.assertEqual(response.code, http.UNSUPPORTED_MEDIA_TYPE)
        self.assertIn(b"Unsupported Media Type", response.stream)
        self.assertIn(b"&lt;b&gt;text/plain&lt;/b&gt;", response.stream)


    def test_httpError(self):
        error = HTTPError(http.NOT_IMPLEMENTED)
        self.assertEqual(error.response.code, http.NOT_IMPLEMENTED)

        response = StatusResponse(http.BAD_REQUEST, "Bad")
        self.assertIs(HTTPError(response).response, response)
