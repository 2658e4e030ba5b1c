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
from typing import Optional, Sequence

from opentelemetry.context import Context
from opentelemetry.sampler.drop_rules._config import DropRulesConfig
from opentelemetry.sampler.drop_rules._engine import DropRulesEngine
from opentelemetry.sdk.trace.sampling import Decision, Sampler, SamplingResult
from opentelemetry.trace import Link, SpanKind, get_current_span
from opentelemetry.trace.span import TraceState
from opentelemetry.util.types import Attributes

_logger = logging.getLogger(__name__)


class DropRulesSampler(Sampler):
    """Drops spans matched by the drop rules and samples everything else.

    The decision only depends on the span name, kind and start attributes,
    so it is the same for every evaluation of the same span.
    """

    def __init__(self, config: Optional[DropRulesConfig] = None):
        self._engine = DropRulesEngine(config)

    @property
    def config(self) -> DropRulesConfig:
        return self._engine.config

    def should_sample(
        self,
        parent_context: Optional[Context],
        trace_id: int,
        name: str,
        kind: Optional[SpanKind] = None,
        attributes: Attributes = None,
        links: Optional[Sequence[Link]] = None,
        trace_state: Optional[TraceState] = None,
    ) -> SamplingResult:
        decision = self._engine.decide(kind, name, attributes)
        if decision is Decision.DROP:
            attributes = None
        return SamplingResult(
            decision,
            attributes,
            _get_parent_trace_state(parent_context),
        )

    def get_description(self) -> str:
        return "DropRulesSampler"


def _get_parent_trace_state(
    parent_context: Optional[Context],
) -> Optional[TraceState]:
    parent_span_context = get_current_span(parent_context).get_span_context()
    if parent_span_context is None or not parent_span_context.is_valid:
        return None
    return parent_span_context.trace_state


def drop_rules_sampler_factory(args: Optional[str] = None) -> Sampler:
    """Entry point for ``OTEL_TRACES_SAMPLER=drop_rules``.

    The rules come from the ``OTEL_PYTHON_DROP_RULES_*`` environment
    variables; ``OTEL_TRACES_SAMPLER_ARG`` is not used.
    """
    if args:
        _logger.debug("Ignoring drop_rules sampler argument %r", args)
    return DropRulesSampler(DropRulesConfig.from_env())
