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

"""
The route of a server request is usually only known once the framework
matched it, long after the server span was started. Frameworks report the
matched route pattern into an ``HttpRouteHolder`` carried by the request's
``Context``; the server attributes extractor reads it back when the span ends.

.. code-block:: python

    context = HttpRouteHolder.init(context)
    ...
    HttpRouteHolder.update_route(
        context, "/users/{id}", HttpRouteSource.CONTROLLER
    )
    ...
    HttpRouteHolder.get_route(context)  # "/users/{id}"
"""

from enum import IntEnum
from typing import Optional

from opentelemetry.context import (
    Context,
    create_key,
    get_current,
    get_value,
    set_value,
)

_ROUTE_HOLDER_KEY = create_key("http-route-holder")


class HttpRouteSource(IntEnum):
    """Where a route came from; a higher value is more specific."""

    SERVER_FILTER = 1
    SERVER = 2
    CONTROLLER = 3
    NESTED_CONTROLLER = 4


class HttpRouteHolder:
    """Mutable route slot owned by a single request's context."""

    __slots__ = ("route", "source")

    def __init__(self):
        self.route: Optional[str] = None
        self.source: Optional[HttpRouteSource] = None

    def _accepts(self, source: HttpRouteSource) -> bool:
        # nested dispatch (forward/include) always reports the inner route
        if source is HttpRouteSource.NESTED_CONTROLLER:
            return True
        return self.source is None or source > self.source

    @staticmethod
    def init(context: Optional[Context] = None) -> Context:
        """Returns a context carrying a fresh holder, unless it has one."""
        if get_value(_ROUTE_HOLDER_KEY, context) is not None:
            return context if context is not None else get_current()
        return set_value(_ROUTE_HOLDER_KEY, HttpRouteHolder(), context)

    @staticmethod
    def update_route(
        context: Optional[Context],
        route: Optional[str],
        source: HttpRouteSource = HttpRouteSource.SERVER_FILTER,
    ) -> bool:
        holder = get_value(_ROUTE_HOLDER_KEY, context)
        if holder is None or not route or not holder._accepts(source):
            return False
        holder.route = route
        holder.source = source
        return True

    @staticmethod
    def get_route(context: Optional[Context] = None) -> Optional[str]:
        holder = get_value(_ROUTE_HOLDER_KEY, context)
        if holder is None:
            return None
        return holder.route
