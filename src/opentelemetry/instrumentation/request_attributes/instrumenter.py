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

import typing

from opentelemetry import trace
from opentelemetry.context import Context
from opentelemetry.instrumentation.request_attributes.extractor import (
    AttributesExtractor,
    HttpServerAttributesExtractor,
)
from opentelemetry.instrumentation.request_attributes.getters import (
    HttpServerAttributesGetter,
    wsgi_getter,
)
from opentelemetry.instrumentation.request_attributes.messaging import (
    MessageOperation,
    MessagingAttributesExtractor,
    MessagingAttributesGetter,
    messaging_span_name,
)
from opentelemetry.instrumentation.request_attributes.route import (
    HttpRouteHolder,
)
from opentelemetry.instrumentation.request_attributes.version import (
    __version__,
)
from opentelemetry.instrumentation.utils import http_status_to_status_code
from opentelemetry.semconv.trace import SpanAttributes
from opentelemetry.trace import SpanKind, Tracer, TracerProvider
from opentelemetry.trace.status import Status, StatusCode
from opentelemetry.util.http import sanitize_method

SpanNameExtractorT = typing.Callable[[typing.Any], str]
RouteSpanNameT = typing.Callable[[typing.Any, str], str]


class HttpServerSpanName:
    """Names server spans ``"<METHOD> <route>"``, or just the method.

    Nonstandard methods are named ``HTTP``.
    """

    def __init__(self, getter: HttpServerAttributesGetter):
        self._getter = getter

    def __call__(self, request):
        return self.with_route(request, self._getter.route(request))

    def with_route(self, request, route):
        method = self._getter.method(request)
        if method:
            method = sanitize_method(method.strip())
        if not method or method == "_OTHER":
            return "HTTP"
        if route:
            return f"{method} {route}"
        return method


class Instrumenter:
    """Drives the attributes extractors over one span's lifetime.

    ``start`` runs every extractor's ``on_start`` before the span is
    created, so a sampler configured on the tracer provider sees the
    request attributes. ``end`` runs every ``on_end``, sets the collected
    attributes on the span and ends it.

    Args:
        tracer: The tracer spans are started with.
        span_name_extractor: Returns the span name for a request.
        span_kind: Kind of the started spans.
        attributes_extractors: Extractors run in order at start and end.
        route_span_name: Renames server spans once the matched route is
            known at end.
    """

    def __init__(
        self,
        tracer: Tracer,
        span_name_extractor: SpanNameExtractorT,
        span_kind: SpanKind,
        attributes_extractors: typing.Sequence[AttributesExtractor],
        route_span_name: typing.Optional[RouteSpanNameT] = None,
    ):
        self._tracer = tracer
        self._span_name_extractor = span_name_extractor
        self._span_kind = span_kind
        self._attributes_extractors = tuple(attributes_extractors)
        self._route_span_name = route_span_name

    def start(
        self, parent_context: typing.Optional[Context], request
    ) -> Context:
        attributes = {}
        for extractor in self._attributes_extractors:
            extractor.on_start(attributes, parent_context, request)

        span = self._tracer.start_span(
            self._span_name_extractor(request),
            context=parent_context,
            kind=self._span_kind,
            attributes=attributes,
        )
        context = trace.set_span_in_context(span, parent_context)
        if self._span_kind is SpanKind.SERVER:
            context = HttpRouteHolder.init(context)
        return context

    def end(
        self,
        context: Context,
        request,
        response=None,
        error: typing.Optional[BaseException] = None,
    ) -> None:
        span = trace.get_current_span(context)

        try:
            attributes = {}
            for extractor in self._attributes_extractors:
                extractor.on_end(attributes, context, request, response, error)

            if span.is_recording():
                span.set_attributes(attributes)

                route = attributes.get(SpanAttributes.HTTP_ROUTE)
                if route and self._route_span_name is not None:
                    span.update_name(self._route_span_name(request, route))

                status_code = attributes.get(SpanAttributes.HTTP_STATUS_CODE)
                if status_code is not None:
                    span.set_status(
                        Status(
                            http_status_to_status_code(
                                status_code,
                                server_span=self._span_kind is SpanKind.SERVER,
                            )
                        )
                    )
                if error is not None:
                    span.record_exception(error)
                    span.set_status(
                        Status(
                            StatusCode.ERROR,
                            f"{type(error).__qualname__}: {error}",
                        )
                    )
        finally:
            span.end()


def http_server_instrumenter(
    tracer_provider: typing.Optional[TracerProvider] = None,
    getter: HttpServerAttributesGetter = wsgi_getter,
    attributes_extractors: typing.Sequence[AttributesExtractor] = (),
    **extractor_kwargs,
) -> Instrumenter:
    """Builds an ``Instrumenter`` for SERVER spans.

    ``extractor_kwargs`` are passed on to ``HttpServerAttributesExtractor``.
    """
    tracer = trace.get_tracer(__name__, __version__, tracer_provider)
    span_name = HttpServerSpanName(getter)
    return Instrumenter(
        tracer,
        span_name,
        SpanKind.SERVER,
        [
            HttpServerAttributesExtractor(getter, **extractor_kwargs),
            *attributes_extractors,
        ],
        route_span_name=span_name.with_route,
    )


def messaging_instrumenter(
    getter: MessagingAttributesGetter,
    operation: MessageOperation,
    tracer_provider: typing.Optional[TracerProvider] = None,
    captured_headers: typing.Sequence[str] = (),
    attributes_extractors: typing.Sequence[AttributesExtractor] = (),
) -> Instrumenter:
    tracer = trace.get_tracer(__name__, __version__, tracer_provider)
    if operation is MessageOperation.SEND:
        span_kind = SpanKind.PRODUCER
    else:
        span_kind = SpanKind.CONSUMER
    return Instrumenter(
        tracer,
        messaging_span_name(getter, operation),
        span_kind,
        [
            MessagingAttributesExtractor(getter, operation, captured_headers),
            *attributes_extractors,
        ],
    )
