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
Messaging span attributes, the record-side counterpart of the HTTP server
extractor. A ``MessagingAttributesGetter`` reads the fields of one message
(a Kafka ``ConsumerRecord``, a JMS message, ...); the extractor turns them
into ``messaging.*`` attributes and, like the HTTP side, copies an
``x-request-id`` header into ``http.x_request_id``.
"""

import logging
import typing
from enum import Enum
from typing import Protocol

from opentelemetry.instrumentation.request_attributes.extractor import (
    HTTP_X_REQUEST_ID,
    set_int_attribute,
    set_string_attribute,
)
from opentelemetry.instrumentation.request_attributes.headers import (
    X_REQUEST_ID,
    first_header_value,
)

_logger = logging.getLogger(__name__)

MESSAGING_SYSTEM = "messaging.system"
MESSAGING_DESTINATION_KIND = "messaging.destination_kind"
MESSAGING_DESTINATION = "messaging.destination"
MESSAGING_TEMP_DESTINATION = "messaging.temp_destination"
MESSAGING_PROTOCOL = "messaging.protocol"
MESSAGING_PROTOCOL_VERSION = "messaging.protocol_version"
MESSAGING_URL = "messaging.url"
MESSAGING_CONVERSATION_ID = "messaging.conversation_id"
MESSAGING_MESSAGE_PAYLOAD_SIZE_BYTES = "messaging.message_payload_size_bytes"
MESSAGING_MESSAGE_PAYLOAD_COMPRESSED_SIZE_BYTES = (
    "messaging.message_payload_compressed_size_bytes"
)
MESSAGING_OPERATION = "messaging.operation"
MESSAGING_MESSAGE_ID = "messaging.message_id"
MESSAGING_KAFKA_PARTITION = "messaging.kafka.partition"
MESSAGING_KAFKA_MESSAGE_OFFSET = "messaging.kafka.message_offset"

_TEMP_DESTINATION_NAME = "(temporary)"


class MessageOperation(Enum):
    SEND = "send"
    RECEIVE = "receive"
    PROCESS = "process"


class MessagingAttributesGetter(Protocol):
    def system(self, request) -> str:
        ...

    def destination_kind(self, request) -> typing.Optional[str]:
        ...

    def destination(self, request) -> typing.Optional[str]:
        ...

    def temporary_destination(self, request) -> bool:
        ...

    def protocol(self, request) -> typing.Optional[str]:
        ...

    def protocol_version(self, request) -> typing.Optional[str]:
        ...

    def url(self, request) -> typing.Optional[str]:
        ...

    def conversation_id(self, request) -> typing.Optional[str]:
        ...

    def message_payload_size(self, request) -> typing.Optional[int]:
        ...

    def message_payload_compressed_size(self, request) -> typing.Optional[int]:
        ...

    def message_id(self, request, response) -> typing.Optional[str]:
        ...

    def header(self, request, name: str) -> typing.List[str]:
        ...


def messaging_span_name(
    getter: MessagingAttributesGetter, operation: MessageOperation
) -> typing.Callable[[typing.Any], str]:
    """Returns a span name extractor producing ``"<destination> <operation>"``."""

    def _span_name(request):
        if getter.temporary_destination(request):
            destination = _TEMP_DESTINATION_NAME
        else:
            destination = getter.destination(request) or "unknown"
        return f"{destination} {operation.value}"

    return _span_name


def normalise_message_header_name(header: str) -> str:
    return f"messaging.header.{header.lower().replace('-', '_')}"


class MessagingAttributesExtractor:
    def __init__(
        self,
        getter: MessagingAttributesGetter,
        operation: MessageOperation,
        captured_headers: typing.Sequence[str] = (),
    ):
        self._getter = getter
        self._operation = operation
        self._captured_headers = tuple(captured_headers)

    def on_start(self, attributes, parent_context, request):
        getter = self._getter

        set_string_attribute(attributes, MESSAGING_SYSTEM, getter.system(request))
        set_string_attribute(
            attributes,
            MESSAGING_DESTINATION_KIND,
            getter.destination_kind(request),
        )
        if getter.temporary_destination(request):
            attributes[MESSAGING_TEMP_DESTINATION] = True
            attributes[MESSAGING_DESTINATION] = _TEMP_DESTINATION_NAME
        else:
            set_string_attribute(
                attributes, MESSAGING_DESTINATION, getter.destination(request)
            )
        set_string_attribute(
            attributes, MESSAGING_PROTOCOL, getter.protocol(request)
        )
        set_string_attribute(
            attributes,
            MESSAGING_PROTOCOL_VERSION,
            getter.protocol_version(request),
        )
        set_string_attribute(attributes, MESSAGING_URL, getter.url(request))
        set_string_attribute(
            attributes,
            MESSAGING_CONVERSATION_ID,
            getter.conversation_id(request),
        )
        set_int_attribute(
            attributes,
            MESSAGING_MESSAGE_PAYLOAD_SIZE_BYTES,
            getter.message_payload_size(request),
        )
        set_int_attribute(
            attributes,
            MESSAGING_MESSAGE_PAYLOAD_COMPRESSED_SIZE_BYTES,
            getter.message_payload_compressed_size(request),
        )
        if self._operation is not MessageOperation.SEND:
            attributes[MESSAGING_OPERATION] = self._operation.value

        for name in self._captured_headers:
            values = getter.header(request, name)
            if values:
                attributes[normalise_message_header_name(name)] = tuple(values)

        set_string_attribute(
            attributes,
            HTTP_X_REQUEST_ID,
            first_header_value(getter.header(request, X_REQUEST_ID)),
        )

    def on_end(self, attributes, context, request, response, error):
        set_string_attribute(
            attributes,
            MESSAGING_MESSAGE_ID,
            self._getter.message_id(request, response),
        )


class KafkaConsumerRecordGetter:
    """Getter for kafka-python ``ConsumerRecord`` objects."""

    def system(self, record):
        return "kafka"

    def destination_kind(self, record):
        return "topic"

    def destination(self, record):
        return getattr(record, "topic", None)

    def temporary_destination(self, record):
        return False

    def protocol(self, record):
        return None

    def protocol_version(self, record):
        return None

    def url(self, record):
        return None

    def conversation_id(self, record):
        return None

    def message_payload_size(self, record):
        size = getattr(record, "serialized_value_size", None)
        if size is None or size < 0:
            return None
        return size

    def message_payload_compressed_size(self, record):
        return None

    def message_id(self, record, response):
        return None

    def header(self, record, name):
        headers = getattr(record, "headers", None)
        if not headers:
            return []

        values = []
        for key, value in headers:
            if key != name or value is None:
                continue
            try:
                values.append(
                    value.decode() if isinstance(value, bytes) else str(value)
                )
            except UnicodeDecodeError:
                _logger.debug(
                    "Failure decoding Kafka record header %s", name, exc_info=True
                )
        return values


class KafkaConsumerAttributesExtractor:
    """Adds the Kafka partition and offset of a consumed record."""

    def on_start(self, attributes, parent_context, record):
        set_int_attribute(
            attributes,
            MESSAGING_KAFKA_PARTITION,
            getattr(record, "partition", None),
        )
        set_int_attribute(
            attributes,
            MESSAGING_KAFKA_MESSAGE_OFFSET,
            getattr(record, "offset", None),
        )

    def on_end(self, attributes, context, record, response, error):
        pass


kafka_consumer_record_getter = KafkaConsumerRecordGetter()
