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

import logging
import typing
from typing import Protocol
from urllib.parse import urlparse

_logger = logging.getLogger(__name__)

_HTTP_VERSION_PREFIX = "HTTP/"
_CARRIER_KEY_PREFIX = "HTTP_"
_UNPREFIXED_ENVIRON_HEADERS = ("CONTENT_TYPE", "CONTENT_LENGTH")
_IP_TCP = "ip_tcp"


class HttpServerAttributesGetter(Protocol):
    """Read access to the fields of an inbound HTTP request and its response.

    Every accessor returns ``None`` (or an empty list for headers) when the
    value is not available. Header lookups are case-insensitive.
    """

    def method(self, request) -> typing.Optional[str]:
        ...

    def scheme(self, request) -> typing.Optional[str]:
        ...

    def target(self, request) -> typing.Optional[str]:
        ...

    def route(self, request) -> typing.Optional[str]:
        """Returns the route known before routing, if the framework has one."""
        ...

    def flavor(self, request) -> typing.Optional[str]:
        ...

    def request_header(self, request, name: str) -> typing.List[str]:
        ...

    def request_headers(self, request) -> typing.Dict[str, str]:
        """Returns every request header, repeated values joined with commas."""
        ...

    def status_code(self, request, response, error) -> typing.Optional[int]:
        ...

    def response_header(
        self, request, response, name: str
    ) -> typing.List[str]:
        ...

    def response_headers(self, request, response) -> typing.Dict[str, str]:
        ...

    def transport(self, request) -> typing.Optional[str]:
        ...

    def host_name(self, request) -> typing.Optional[str]:
        ...

    def host_port(self, request) -> typing.Optional[int]:
        ...


def _target_from_uri(uri):
    if not uri:
        return None
    parts = urlparse(uri)
    if not parts.path:
        return None
    if parts.query:
        return parts.path + "?" + parts.query
    return parts.path


def _join_header_values(headers):
    joined = {}
    for key, value in headers:
        key = key.lower()
        if key in joined:
            joined[key] = joined[key] + "," + value
        else:
            joined[key] = value
    return joined


def _to_int(value):
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        _logger.debug("Ignoring non-integer value %r", value)
        return None


class WSGIAttributesGetter:
    """Getter for PEP 3333 environ dicts.

    The response is the ``(status, response_headers)`` pair handed to
    ``start_response``.
    """

    def method(self, environ):
        return environ.get("REQUEST_METHOD")

    def scheme(self, environ):
        return environ.get("wsgi.url_scheme")

    def target(self, environ):
        path = environ.get("PATH_INFO")
        if not path:
            # following https://peps.python.org/pep-3333/#url-reconstruction
            # with RAW_URI and REQUEST_URI as servers provide them
            target = _target_from_uri(
                environ.get("REQUEST_URI")
            ) or _target_from_uri(environ.get("RAW_URI"))
            if target:
                return target

        target = path or "/"
        query = environ.get("QUERY_STRING")
        if query:
            target += "?" + query
        return target

    def route(self, environ):
        return None

    def flavor(self, environ):
        http_version = environ.get("SERVER_PROTOCOL", "")
        if http_version.upper().startswith(_HTTP_VERSION_PREFIX):
            return http_version[len(_HTTP_VERSION_PREFIX) :]
        return None

    def request_header(self, environ, name):
        key = name.upper().replace("-", "_")
        if key not in _UNPREFIXED_ENVIRON_HEADERS:
            key = _CARRIER_KEY_PREFIX + key
        value = environ.get(key)
        if value is None:
            return []
        return [value]

    def request_headers(self, environ):
        return {
            key[len(_CARRIER_KEY_PREFIX) :].replace("_", "-"): value
            for key, value in environ.items()
            if key.startswith(_CARRIER_KEY_PREFIX)
        }

    def status_code(self, environ, response, error):
        if not response:
            return None
        status = response[0]
        status_code, _, _ = str(status).partition(" ")
        try:
            return int(status_code)
        except ValueError:
            _logger.debug("Non-integer HTTP status: %r", status)
            return None

    def response_header(self, environ, response, name):
        if not response or len(response) < 2 or not response[1]:
            return []
        name = name.lower()
        return [
            value for key, value in response[1] if key.lower() == name
        ]

    def response_headers(self, environ, response):
        if not response or len(response) < 2 or not response[1]:
            return {}
        return _join_header_values(response[1])

    def transport(self, environ):
        return _IP_TCP

    def host_name(self, environ):
        return environ.get("SERVER_NAME") or None

    def host_port(self, environ):
        return _to_int(environ.get("SERVER_PORT"))


def _decode_header_item(value):
    if isinstance(value, bytes):
        return value.decode("latin-1")
    return value


class ASGIAttributesGetter:
    """Getter for ASGI ``http`` connection scopes.

    The response is either the ``http.response.start`` message or a plain
    integer status code.
    """

    def method(self, scope):
        return scope.get("method")

    def scheme(self, scope):
        return scope.get("scheme")

    def target(self, scope):
        path = scope.get("path")
        if not path:
            return None
        query = _decode_header_item(scope.get("query_string"))
        if query:
            return path + "?" + query
        return path

    def route(self, scope):
        route = scope.get("route")
        if isinstance(route, str):
            return route
        return None

    def flavor(self, scope):
        return scope.get("http_version")

    @staticmethod
    def _headers(headers, name):
        if not headers:
            return []
        name = name.lower()
        return [
            _decode_header_item(value)
            for key, value in headers
            if _decode_header_item(key).lower() == name
        ]

    def request_header(self, scope, name):
        return self._headers(scope.get("headers"), name)

    def request_headers(self, scope):
        return _join_header_values(
            (_decode_header_item(key), _decode_header_item(value))
            for key, value in scope.get("headers") or ()
        )

    def status_code(self, scope, response, error):
        if response is None:
            return None
        if isinstance(response, int):
            return response
        return _to_int(response.get("status"))

    def response_header(self, scope, response, name):
        if not isinstance(response, dict):
            return []
        return self._headers(response.get("headers"), name)

    def response_headers(self, scope, response):
        if not isinstance(response, dict):
            return {}
        return _join_header_values(
            (_decode_header_item(key), _decode_header_item(value))
            for key, value in response.get("headers") or ()
        )

    def transport(self, scope):
        return _IP_TCP

    def host_name(self, scope):
        server = scope.get("server")
        if server:
            return server[0]
        return None

    def host_port(self, scope):
        server = scope.get("server")
        if server and len(server) > 1:
            return _to_int(server[1])
        return None


wsgi_getter = WSGIAttributesGetter()
asgi_getter = ASGIAttributesGetter()
