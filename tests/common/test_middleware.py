"""
Tests for request correlation and structured logging
"""

import logging

from django.http import HttpResponse
from django.test import RequestFactory, SimpleTestCase

from apps.common.logging import RequestIDFilter, get_logger, get_request_context, set_request_context
from apps.common.middleware import RequestIDMiddleware


class RequestIDMiddlewareTestCase(SimpleTestCase):
    def setUp(self):
        self.factory = RequestFactory()
        self.seen = {}

        def view(request):
            self.seen.update(get_request_context())
            return HttpResponse("ok")

        self.middleware = RequestIDMiddleware(view)

    def test_generates_id_and_clears_context(self):
        response = self.middleware(self.factory.get("/"))

        self.assertTrue(response["X-Request-ID"])
        self.assertEqual(self.seen["request_id"], response["X-Request-ID"])
        self.assertEqual(get_request_context()["request_id"], "-")

    def test_honours_upstream_id(self):
        response = self.middleware(self.factory.get("/", HTTP_X_REQUEST_ID="lb-1234"))
        self.assertEqual(response["X-Request-ID"], "lb-1234")

    def test_replaces_malformed_upstream_id(self):
        response = self.middleware(self.factory.get("/", HTTP_X_REQUEST_ID="bad id; drop"))
        self.assertNotEqual(response["X-Request-ID"], "bad id; drop")


class StructuredLoggingTestCase(SimpleTestCase):
    def test_filter_adds_request_context(self):
        set_request_context(request_id="req-1", user_id=7)
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)
        try:
            RequestIDFilter().filter(record)
        finally:
            set_request_context(request_id="-", user_id=None)

        self.assertEqual(record.request_id, "req-1")
        self.assertEqual(record.user_id, 7)

    def test_adapter_moves_keywords_into_extra(self):
        log = get_logger("storefront.test", component="outbox")

        msg, kwargs = log.process("hello", {"task_id": "t1", "exc_info": False})

        self.assertEqual(msg, "hello")
        self.assertEqual(kwargs["extra"], {"component": "outbox", "task_id": "t1"})
        self.assertFalse(kwargs["exc_info"])
