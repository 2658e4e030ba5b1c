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
Request attribute extraction for server and messaging spans.

The extractors derive span attributes from untrusted request headers:
the scheme and client address a proxy reported (``Forwarded``,
``X-Forwarded-Proto``, ``X-Forwarded-For``), the ``uid`` / ``r_udb_uid``
session cookies and the ``X-Request-Id`` correlation header. The route is
recorded again when the span ends, once the framework matched it.

Usage
-----

.. code-block:: python

    from opentelemetry import context
    from opentelemetry.instrumentation.request_attributes import (
        HttpRouteHolder,
        HttpRouteSource,
        http_server_instrumenter,
    )

    instrumenter = http_server_instrumenter()

    def app(environ, start_response):
        ctx = instrumenter.start(context.get_current(), environ)
        token = context.attach(ctx)
        try:
            HttpRouteHolder.update_route(
                ctx, "/users/{id}", HttpRouteSource.CONTROLLER
            )
            status = "200 OK"
            headers = [("Content-Type", "text/plain")]
            start_response(status, headers)
        except Exception as exc:
            instrumenter.end(ctx, environ, error=exc)
            raise
        finally:
            context.detach(token)
        instrumenter.end(ctx, environ, (status, headers))
        return [b"*"]

Attributes
----------

On top of the HTTP semantic conventions (``http.scheme``, ``http.target``,
``http.route``, ``http.client_ip``, ``net.host.*``, ...) server spans carry:

* ``http.oa_uid`` - value of the ``uid`` cookie
* ``http.uid`` - value of the ``r_udb_uid`` cookie
* ``http.x_request_id`` - the ``X-Request-Id`` header

Attributes whose source is absent or malformed are omitted.

API
---
"""

from opentelemetry.instrumentation.request_attributes.extractor import (
    HTTP_OA_UID,
    HTTP_UID,
    HTTP_X_REQUEST_ID,
    AttributesExtractor,
    HttpServerAttributesExtractor,
)
from opentelemetry.instrumentation.request_attributes.getters import (
    ASGIAttributesGetter,
    HttpServerAttributesGetter,
    WSGIAttributesGetter,
    asgi_getter,
    wsgi_getter,
)
from opentelemetry.instrumentation.request_attributes.instrumenter import (
    HttpServerSpanName,
    Instrumenter,
    http_server_instrumenter,
    messaging_instrumenter,
)
from opentelemetry.instrumentation.request_attributes.messaging import (
    KafkaConsumerAttributesExtractor,
    KafkaConsumerRecordGetter,
    MessageOperation,
    MessagingAttributesExtractor,
    MessagingAttributesGetter,
    kafka_consumer_record_getter,
)
from opentelemetry.instrumentation.request_attributes.route import (
    HttpRouteHolder,
    HttpRouteSource,
)

__all__ = [
    "ASGIAttributesGetter",
    "AttributesExtractor",
    "HTTP_OA_UID",
    "HTTP_UID",
    "HTTP_X_REQUEST_ID",
    "HttpRouteHolder",
    "HttpRouteSource",
    "HttpServerAttributesExtractor",
    "HttpServerAttributesGetter",
    "HttpServerSpanName",
    "Instrumenter",
    "KafkaConsumerAttributesExtractor",
    "KafkaConsumerRecordGetter",
    "MessageOperation",
    "MessagingAttributesExtractor",
    "MessagingAttributesGetter",
    "WSGIAttributesGetter",
    "asgi_getter",
    "http_server_instrumenter",
    "kafka_consumer_record_getter",
    "messaging_instrumenter",
    "wsgi_getter",
]
