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
HTTP server span attributes.

``HttpServerAttributesExtractor`` fills a span's attribute dict twice: once
when the server span starts and once when it ends. Start-time attributes come
from the request (through an ``HttpServerAttributesGetter``) and its proxy,
cookie and correlation headers; end-time attributes add the response status
and the route the framework finally matched.

Captured headers
****************
Request and response headers whose names fully match one of the regular
expressions listed (comma separated) in
``OTEL_INSTRUMENTATION_HTTP_CAPTURE_HEADERS_SERVER_REQUEST`` and
``OTEL_INSTRUMENTATION_HTTP_CAPTURE_HEADERS_SERVER_RESPONSE`` are recorded as
``http.request.header.<name>`` / ``http.response.header.<name>``. Values of
headers matching ``OTEL_INSTRUMENTATION_HTTP_CAPTURE_HEADERS_SANITIZE_FIELDS``
are replaced by ``[REDACTED]``.
"""

import typing
from typing import Protocol

from opentelemetry.context import Context
from opentelemetry.instrumentation.request_attributes.getters import (
    HttpServerAttributesGetter,
    wsgi_getter,
)
from opentelemetry.instrumentation.request_attributes.headers import (
    extract_request_id,
    extract_session_cookies,
    first_header_value,
    parse_host_header,
    resolve_client_ip,
    resolve_host,
    resolve_scheme,
)
from opentelemetry.instrumentation.request_attributes.route import (
    HttpRouteHolder,
)
from opentelemetry.semconv.trace import SpanAttributes
from opentelemetry.util.http import (
    OTEL_INSTRUMENTATION_HTTP_CAPTURE_HEADERS_SANITIZE_FIELDS,
    OTEL_INSTRUMENTATION_HTTP_CAPTURE_HEADERS_SERVER_REQUEST,
    OTEL_INSTRUMENTATION_HTTP_CAPTURE_HEADERS_SERVER_RESPONSE,
    SanitizeValue,
    get_custom_headers,
    normalise_request_header_name,
    normalise_response_header_name,
    sanitize_method,
)

HTTP_OA_UID = "http.oa_uid"
HTTP_UID = "http.uid"
HTTP_X_REQUEST_ID = "http.x_request_id"

_CONTENT_LENGTH = "content-length"
_USER_AGENT = "user-agent"

AttributesT = typing.MutableMapping[str, typing.Any]
RouteGetterT = typing.Callable[[Context], typing.Optional[str]]


def set_string_attribute(attributes, key, value):
    if value is not None and value != "":
        attributes[key] = value
        return True
    return False


def set_int_attribute(attributes, key, value):
    if value is None or value == "":
        return False
    try:
        attributes[key] = int(value)
    except (TypeError, ValueError):
        return False
    return True


class AttributesExtractor(Protocol):
    def on_start(
        self,
        attributes: AttributesT,
        parent_context: typing.Optional[Context],
        request: typing.Any,
    ) -> None:
        """Adds the attributes known when the span starts."""

    def on_end(
        self,
        attributes: AttributesT,
        context: typing.Optional[Context],
        request: typing.Any,
        response: typing.Any,
        error: typing.Optional[BaseException],
    ) -> None:
        """Adds the attributes known once the request completed."""


class HttpServerAttributesExtractor:
    """Extracts HTTP server span attributes.

    Args:
        getter: Accessor for the instrumented framework's request and
            response types. Defaults to the WSGI getter.
        captured_request_headers: Request header name patterns to record.
            Read from ``OTEL_INSTRUMENTATION_HTTP_CAPTURE_HEADERS_SERVER_REQUEST``
            when omitted.
        captured_response_headers: Response header name patterns to record. Read
            from ``OTEL_INSTRUMENTATION_HTTP_CAPTURE_HEADERS_SERVER_RESPONSE``
            when omitted.
        sanitized_fields: Header name patterns whose values are redacted.
            Read from ``OTEL_INSTRUMENTATION_HTTP_CAPTURE_HEADERS_SANITIZE_FIELDS``
            when omitted.
        route_getter: Returns the matched route of a finished request from
            its context. Defaults to ``HttpRouteHolder.get_route``.
    """

    def __init__(
        self,
        getter: HttpServerAttributesGetter = wsgi_getter,
        captured_request_headers: typing.Optional[typing.Sequence[str]] = None,
        captured_response_headers: typing.Optional[
            typing.Sequence[str]
        ] = None,
        sanitized_fields: typing.Optional[typing.Sequence[str]] = None,
        route_getter: RouteGetterT = HttpRouteHolder.get_route,
    ):
        if captured_request_headers is None:
            captured_request_headers = get_custom_headers(
                OTEL_INSTRUMENTATION_HTTP_CAPTURE_HEADERS_SERVER_REQUEST
            )
        if captured_response_headers is None:
            captured_response_headers = get_custom_headers(
                OTEL_INSTRUMENTATION_HTTP_CAPTURE_HEADERS_SERVER_RESPONSE
            )
        if sanitized_fields is None:
            sanitized_fields = get_custom_headers(
                OTEL_INSTRUMENTATION_HTTP_CAPTURE_HEADERS_SANITIZE_FIELDS
            )
        self._getter = getter
        self._captured_request_headers = list(captured_request_headers)
        self._captured_response_headers = list(captured_response_headers)
        self._sanitize = SanitizeValue(list(sanitized_fields))
        self._route_getter = route_getter

    def _capture_headers(self, attributes, headers, header_regexes, normalise):
        attributes.update(
            self._sanitize.sanitize_header_values(
                headers, header_regexes, normalise
            )
        )

    def on_start(self, attributes, parent_context, request):
        getter = self._getter

        method = getter.method(request)
        if method:
            set_string_attribute(
                attributes,
                SpanAttributes.HTTP_METHOD,
                sanitize_method(method.strip()),
            )
        set_string_attribute(
            attributes,
            SpanAttributes.HTTP_USER_AGENT,
            first_header_value(getter.request_header(request, _USER_AGENT)),
        )
        set_int_attribute(
            attributes,
            SpanAttributes.HTTP_REQUEST_CONTENT_LENGTH,
            first_header_value(getter.request_header(request, _CONTENT_LENGTH)),
        )
        self._capture_headers(
            attributes,
            getter.request_headers(request),
            self._captured_request_headers,
            normalise_request_header_name,
        )

        set_string_attribute(
            attributes, SpanAttributes.HTTP_FLAVOR, getter.flavor(request)
        )
        set_string_attribute(
            attributes,
            SpanAttributes.HTTP_SCHEME,
            resolve_scheme(getter, request),
        )
        set_string_attribute(
            attributes, SpanAttributes.HTTP_TARGET, getter.target(request)
        )
        set_string_attribute(
            attributes, SpanAttributes.HTTP_ROUTE, getter.route(request)
        )
        set_string_attribute(
            attributes,
            SpanAttributes.HTTP_CLIENT_IP,
            resolve_client_ip(getter, request),
        )

        cookies = extract_session_cookies(getter, request)
        set_string_attribute(attributes, HTTP_OA_UID, cookies.oa_uid)
        set_string_attribute(attributes, HTTP_UID, cookies.uid)
        set_string_attribute(
            attributes, HTTP_X_REQUEST_ID, extract_request_id(getter, request)
        )

        self._set_net_attributes(attributes, request)

    def _set_net_attributes(self, attributes, request):
        getter = self._getter
        set_string_attribute(
            attributes, SpanAttributes.NET_TRANSPORT, getter.transport(request)
        )

        host_name = getter.host_name(request)
        host_port = getter.host_port(request)
        if host_name is None or host_port is None:
            header_name, header_port = parse_host_header(
                resolve_host(getter, request)
            )
            if host_name is None:
                host_name = header_name
            if host_port is None:
                host_port = header_port
        set_string_attribute(
            attributes, SpanAttributes.NET_HOST_NAME, host_name
        )
        set_int_attribute(attributes, SpanAttributes.NET_HOST_PORT, host_port)

    def on_end(self, attributes, context, request, response, error):
        getter = self._getter

        if response is not None:
            set_int_attribute(
                attributes,
                SpanAttributes.HTTP_STATUS_CODE,
                getter.status_code(request, response, error),
            )
            set_int_attribute(
                attributes,
                SpanAttributes.HTTP_RESPONSE_CONTENT_LENGTH,
                first_header_value(
                    getter.response_header(request, response, _CONTENT_LENGTH)
                ),
            )
            self._capture_headers(
                attributes,
                getter.response_headers(request, response),
                self._captured_response_headers,
                normalise_response_header_name,
            )

        # the matched route replaces the best-effort one recorded at start
        set_string_attribute(
            attributes, SpanAttributes.HTTP_ROUTE, self._route_getter(context)
        )
