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

from typing import Optional

from opentelemetry.sampler.drop_rules._config import DropRulesConfig
from opentelemetry.sdk.trace.sampling import Decision
from opentelemetry.semconv.trace import SpanAttributes
from opentelemetry.trace import SpanKind
from opentelemetry.util.types import Attributes


class DropRulesEngine:
    """Evaluates the drop rules for one span, first match wins:

    1. the span name is one of ``drop_span_names``
    2. an INTERNAL span name ends with one of ``internal_suffixes``
    3. a CLIENT span name contains one of ``client_substrings``
    4. an INTERNAL span name ends with one of ``health_check_suffixes``
    5. the path of ``http.target`` (without its query) is one of
       ``ignore_paths``

    Any match drops the span, otherwise it is recorded and sampled. The
    name rules come first since they need no attribute lookup.
    """

    def __init__(self, config: Optional[DropRulesConfig] = None):
        self._config = config if config is not None else DropRulesConfig()

    @property
    def config(self) -> DropRulesConfig:
        return self._config

    def decide(
        self,
        kind: Optional[SpanKind],
        name: Optional[str],
        attributes: Attributes = None,
    ) -> Decision:
        config = self._config

        if name:
            if name in config.drop_span_names:
                return Decision.DROP
            if kind is SpanKind.INTERNAL and name.endswith(
                config.internal_suffixes
            ):
                return Decision.DROP
            if kind is SpanKind.CLIENT and any(
                substring in name for substring in config.client_substrings
            ):
                return Decision.DROP
            if kind is SpanKind.INTERNAL and name.endswith(
                config.health_check_suffixes
            ):
                return Decision.DROP

        if attributes:
            target = attributes.get(SpanAttributes.HTTP_TARGET)
            if (
                isinstance(target, str)
                and target.split("?", 1)[0] in config.ignore_paths
            ):
                return Decision.DROP

        return Decision.RECORD_AND_SAMPLE
