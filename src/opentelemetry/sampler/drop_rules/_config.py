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
from dataclasses import dataclass
from os import environ
from typing import FrozenSet, Iterable, List, Optional, Tuple

_logger = logging.getLogger(__name__)

OTEL_PYTHON_DROP_RULES_SPAN_NAMES = "OTEL_PYTHON_DROP_RULES_SPAN_NAMES"
OTEL_PYTHON_DROP_RULES_INTERNAL_SUFFIXES = (
    "OTEL_PYTHON_DROP_RULES_INTERNAL_SUFFIXES"
)
OTEL_PYTHON_DROP_RULES_CLIENT_SUBSTRINGS = (
    "OTEL_PYTHON_DROP_RULES_CLIENT_SUBSTRINGS"
)
OTEL_PYTHON_DROP_RULES_HEALTH_CHECK_SUFFIXES = (
    "OTEL_PYTHON_DROP_RULES_HEALTH_CHECK_SUFFIXES"
)
OTEL_PYTHON_DROP_RULES_IGNORE_PATHS = "OTEL_PYTHON_DROP_RULES_IGNORE_PATHS"

DEFAULT_DROP_SPAN_NAMES = frozenset(
    {
        "KafkaMessageListenerContainer$ListenerConsumer$$Lambda$.run",
        "org.apache.dubbo.metadata.InstanceMetadataChangedListener/echo",
    }
)
# scheduled jobs
DEFAULT_INTERNAL_SUFFIXES = ("_st",)
DEFAULT_CLIENT_SUBSTRINGS = ("redis",)
DEFAULT_HEALTH_CHECK_SUFFIXES = ("ping",)
DEFAULT_IGNORE_PATHS = frozenset(
    {
        "/ping",
        "/sse/connect",
        # long polling
        "/listener",
    }
)


def _patterns(field_name: str, values: Iterable[str]) -> Tuple[str, ...]:
    if isinstance(values, str):
        values = (values,)
    patterns = []
    for value in values:
        if not value:
            # an empty suffix or substring would match every span name
            _logger.warning("Ignoring empty %s entry", field_name)
            continue
        patterns.append(value)
    return tuple(patterns)


def _names(values: Iterable[str]) -> FrozenSet[str]:
    if isinstance(values, str):
        values = (values,)
    return frozenset(values)


@dataclass(frozen=True)
class DropRulesConfig:
    """Immutable drop-rule configuration shared by every evaluation.

    ``drop_span_names`` and ``ignore_paths`` are matched exactly,
    ``internal_suffixes`` and ``health_check_suffixes`` against the end of
    INTERNAL span names and ``client_substrings`` anywhere in CLIENT span
    names.
    """

    drop_span_names: FrozenSet[str] = DEFAULT_DROP_SPAN_NAMES
    internal_suffixes: Tuple[str, ...] = DEFAULT_INTERNAL_SUFFIXES
    client_substrings: Tuple[str, ...] = DEFAULT_CLIENT_SUBSTRINGS
    health_check_suffixes: Tuple[str, ...] = DEFAULT_HEALTH_CHECK_SUFFIXES
    ignore_paths: FrozenSet[str] = DEFAULT_IGNORE_PATHS

    def __post_init__(self):
        object.__setattr__(
            self, "drop_span_names", _names(self.drop_span_names)
        )
        object.__setattr__(self, "ignore_paths", _names(self.ignore_paths))
        for field_name in (
            "internal_suffixes",
            "client_substrings",
            "health_check_suffixes",
        ):
            object.__setattr__(
                self,
                field_name,
                _patterns(field_name, getattr(self, field_name)),
            )

    @classmethod
    def from_env(cls) -> "DropRulesConfig":
        """Builds a configuration from the ``OTEL_PYTHON_DROP_RULES_*``
        environment variables.

        Each variable is a comma separated list. An unset variable keeps the
        default, an empty one clears the list.
        """
        overrides = {}
        for field_name, env_var in (
            ("drop_span_names", OTEL_PYTHON_DROP_RULES_SPAN_NAMES),
            ("internal_suffixes", OTEL_PYTHON_DROP_RULES_INTERNAL_SUFFIXES),
            ("client_substrings", OTEL_PYTHON_DROP_RULES_CLIENT_SUBSTRINGS),
            (
                "health_check_suffixes",
                OTEL_PYTHON_DROP_RULES_HEALTH_CHECK_SUFFIXES,
            ),
            ("ignore_paths", OTEL_PYTHON_DROP_RULES_IGNORE_PATHS),
        ):
            values = _parse_list(env_var)
            if values is not None:
                overrides[field_name] = values
        config = cls(**overrides)
        _logger.debug("Drop rules configuration: %s", config)
        return config


def _parse_list(env_var: str) -> Optional[List[str]]:
    value = environ.get(env_var)
    if value is None:
        return None
    return [item.strip() for item in value.split(",") if item.strip()]
