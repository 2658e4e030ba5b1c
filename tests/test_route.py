# Copyright The OpenTelemetry Authors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

import unittest

from opentelemetry.context import Context, attach, detach
from opentelemetry.instrumentation.request_attributes.route import (
    HttpRouteHolder,
    HttpRouteSource,
)


class TestHttpRouteHolder(unittest.TestCase):
    def setUp(self):
        self.context = HttpRouteHolder.init(Context())

    def test_fresh_holder_has_no_route(self):
        self.assertIsNone(HttpRouteHolder.get_route(self.context))

    def test_init_keeps_existing_holder(self):
        HttpRouteHolder.update_route(self.context, "/a")
        context = HttpRouteHolder.init(self.context)
        self.assertIs(context, self.context)
        self.assertEqual(HttpRouteHolder.get_route(context), "/a")

    def test_more_specific_source_wins(self):
        self.assertTrue(
            HttpRouteHolder.update_route(
                self.context, "/*", HttpRouteSource.SERVER_FILTER
            )
        )
        self.assertTrue(
            HttpRouteHolder.update_route(
                self.context, "/users/*", HttpRouteSource.SERVER
            )
        )
        self.assertTrue(
            HttpRouteHolder.update_route(
                self.context, "/users/{id}", HttpRouteSource.CONTROLLER
            )
        )
        self.assertEqual(
            HttpRouteHolder.get_route(self.context), "/users/{id}"
        )

    def test_default_source_is_least_specific(self):
        self.assertTrue(HttpRouteHolder.update_route(self.context, "/a"))
        self.assertTrue(
            HttpRouteHolder.update_route(
                self.context, "/b", HttpRouteSource.SERVER
            )
        )
        self.assertEqual(HttpRouteHolder.get_route(self.context), "/b")

    def test_less_specific_source_is_ignored(self):
        HttpRouteHolder.update_route(
            self.context, "/users/{id}", HttpRouteSource.CONTROLLER
        )
        self.assertFalse(
            HttpRouteHolder.update_route(
                self.context, "/users/*", HttpRouteSource.SERVER
            )
        )
        self.assertFalse(
            HttpRouteHolder.update_route(
                self.context, "/other", HttpRouteSource.CONTROLLER
            )
        )
        self.assertEqual(
            HttpRouteHolder.get_route(self.context), "/users/{id}"
        )

    def test_nested_controller_always_wins(self):
        HttpRouteHolder.update_route(
            self.context, "/outer", HttpRouteSource.NESTED_CONTROLLER
        )
        self.assertTrue(
            HttpRouteHolder.update_route(
                self.context, "/inner", HttpRouteSource.NESTED_CONTROLLER
            )
        )
        self.assertEqual(HttpRouteHolder.get_route(self.context), "/inner")

    def test_empty_route_is_ignored(self):
        self.assertFalse(HttpRouteHolder.update_route(self.context, ""))
        self.assertFalse(HttpRouteHolder.update_route(self.context, None))
        self.assertIsNone(HttpRouteHolder.get_route(self.context))

    def test_context_without_holder(self):
        self.assertFalse(HttpRouteHolder.update_route(Context(), "/a"))
        self.assertIsNone(HttpRouteHolder.get_route(Context()))

    def test_current_context(self):
        token = attach(self.context)
        try:
            HttpRouteHolder.update_route(None, "/current")
            self.assertEqual(HttpRouteHolder.get_route(), "/current")
        finally:
            detach(token)
        self.assertEqual(HttpRouteHolder.get_route(self.context), "/current")
