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

from opentelemetry.context import Context
from opentelemetry.sampler.drop_rules._config import DropRulesConfig
from opentelemetry.sampler.drop_rules._engine import DropRulesEngine
from opentelemetry.sdk.trace import ReadableSpan, Span, SpanProcessor
from opentelemetry.sdk.trace.sampling import Decision


class DropRulesSpanProcessor(SpanProcessor):
    """Applies the drop rules to finished spans.

    Wraps another span processor (usually the exporting one) and only hands
    it the spans the rules keep. Unlike ``DropRulesSampler`` the rules see
    the final span: attributes added while the span was running, such as the
    route matched by the framework, and the final span name.
    """

    def __init__(
        self,
        span_processor: SpanProcessor,
        config: Optional[DropRulesConfig] = None,
    ) -> None:
        self._span_processor = span_processor
        self._engine = DropRulesEngine(config)

    def on_start(
        self, span: Span, parent_context: Optional[Context] = None
    ) -> None:
        self._span_processor.on_start(span, parent_context=parent_context)

    def on_end(self, span: ReadableSpan) -> None:
        decision = self._engine.decide(span.kind, span.name, span.attributes)
        if decision is Decision.DROP:
            return
        self._span_processor.on_end(span)

    def shutdown(self) -> None:
        self._span_processor.shutdown()

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        return self._span_processor.force_flush(timeout_millis)
