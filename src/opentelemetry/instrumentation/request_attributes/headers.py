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
Parsing helpers for the request headers an HTTP server span is built from.

Every function here is pure and tolerant: an absent header, or one that does
not match the expected grammar, resolves to ``None`` and never raises. Only the
first hop of a ``Forwarded``, ``X-Forwarded-For`` or ``X-Forwarded-Proto``
chain is ever looked at.

Header lookups go through an ``HttpServerAttributesGetter`` so the same
functions work for WSGI environs, ASGI scopes or any other request type.
"""

from typing import NamedTuple, Optional, Sequence, Tuple

FORWARDED = "forwarded"
X_FORWARDED_FOR = "x-forwarded-for"
X_FORWARDED_PROTO = "x-forwarded-proto"
HOST = "host"
COOKIE = "cookie"
X_REQUEST_ID = "x-request-id"

OA_UID_COOKIE = "uid"
R_UID_COOKIE = "r_udb_uid"

_COOKIE_SEPARATOR = "; "
_PROTO_DIRECTIVE = "proto="
_FOR_DIRECTIVE = "for="


class SessionCookies(NamedTuple):
    oa_uid: Optional[str] = None
    uid: Optional[str] = None


def first_header_value(values: Optional[Sequence[str]]) -> Optional[str]:
    if not values:
        return None
    return values[0]


def _request_header(getter, request, name: str) -> Optional[str]:
    return first_header_value(getter.request_header(request, name))


def _extract_proto(value: str, start: int) -> Optional[str]:
    if start < len(value) and value[start] == '"':
        start += 1
    end = start
    while end < len(value) and value[end].isalpha():
        end += 1
    return value[start:end] or None


def extract_proto_from_forwarded_header(forwarded: str) -> Optional[str]:
    start = forwarded.lower().find(_PROTO_DIRECTIVE)
    if start < 0:
        return None
    return _extract_proto(forwarded, start + len(_PROTO_DIRECTIVE))


def extract_proto_from_forwarded_proto_header(
    forwarded_proto: str,
) -> Optional[str]:
    return _extract_proto(forwarded_proto.lstrip(), 0)


def _extract_ip_address(value: str, start: int) -> Optional[str]:
    while start < len(value) and value[start] == " ":
        start += 1
    if start < len(value) and value[start] == '"':
        start += 1
    if start >= len(value):
        return None

    if value[start] == "[":
        end = value.find("]", start + 1)
        if end == -1:
            return None
        return value[start + 1 : end] or None

    in_ipv4 = False
    for index in range(start, len(value)):
        char = value[index]
        if char == ".":
            in_ipv4 = True
        elif char in ',;" ' or (in_ipv4 and char == ":"):
            return value[start:index] or None
    return value[start:] or None


def extract_client_ip_from_forwarded_header(forwarded: str) -> Optional[str]:
    start = forwarded.lower().find(_FOR_DIRECTIVE)
    if start < 0:
        return None
    return _extract_ip_address(forwarded, start + len(_FOR_DIRECTIVE))


def extract_client_ip_from_forwarded_for_header(
    forwarded_for: str,
) -> Optional[str]:
    return _extract_ip_address(forwarded_for, 0)


def forwarded_proto(getter, request) -> Optional[str]:
    """Returns the scheme a proxy reported for the request, if any.

    ``Forwarded: proto=`` wins over ``X-Forwarded-Proto``; a ``Forwarded``
    header without a usable ``proto`` directive falls through to the legacy
    header.
    """
    forwarded = _request_header(getter, request, FORWARDED)
    if forwarded is not None:
        proto = extract_proto_from_forwarded_header(forwarded)
        if proto is not None:
            return proto

    forwarded = _request_header(getter, request, X_FORWARDED_PROTO)
    if forwarded is not None:
        return extract_proto_from_forwarded_proto_header(forwarded)

    return None


def resolve_scheme(getter, request) -> Optional[str]:
    proto = forwarded_proto(getter, request)
    if proto is not None:
        return proto
    return getter.scheme(request) or None


def resolve_client_ip(getter, request) -> Optional[str]:
    forwarded = _request_header(getter, request, FORWARDED)
    if forwarded is not None:
        client_ip = extract_client_ip_from_forwarded_header(forwarded)
        if client_ip is not None:
            return client_ip

    forwarded = _request_header(getter, request, X_FORWARDED_FOR)
    if forwarded is not None:
        return extract_client_ip_from_forwarded_for_header(forwarded)

    return None


def resolve_host(getter, request) -> Optional[str]:
    return _request_header(getter, request, HOST) or None


def parse_host_header(
    host: Optional[str],
) -> Tuple[Optional[str], Optional[int]]:
    """Splits a ``Host`` header value into its name and port.

    IPv6 literals keep their address without the brackets. A port that is
    not a number is dropped.
    """
    if not host:
        return None, None

    host = host.strip()
    port = None
    if host.startswith("["):
        end = host.find("]")
        if end == -1:
            return None, None
        name = host[1:end]
        rest = host[end + 1 :]
        if rest.startswith(":"):
            port = rest[1:]
    else:
        name, _, port = host.partition(":")

    if port is not None and port.isdigit():
        return name or None, int(port)
    return name or None, None


def extract_session_cookies(getter, request) -> SessionCookies:
    """Scans the ``Cookie`` header for the two user identifier cookies.

    Scanning stops once two recognized tokens were seen, duplicates
    included, so a repeated ``uid`` early in the header can hide a later
    ``r_udb_uid``.
    """
    cookie = _request_header(getter, request, COOKIE)
    if not cookie:
        return SessionCookies()

    oa_uid = None
    uid = None
    found = 0
    for token in cookie.split(_COOKIE_SEPARATOR):
        index = token.find("=")
        if index > 0:
            name = token[:index].strip()
            if name == OA_UID_COOKIE:
                oa_uid = token[index + 1 :].strip()
                found += 1
            elif name == R_UID_COOKIE:
                uid = token[index + 1 :].strip()
                found += 1
        if found == 2:
            break

    return SessionCookies(oa_uid, uid)


def extract_request_id(getter, request) -> Optional[str]:
    return _request_header(getter, request, X_REQUEST_ID) or None
