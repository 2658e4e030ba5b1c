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
Rule based span dropping.

Scheduled jobs, health checks, noisy dependencies and known framework
callbacks produce spans nobody looks at. ``DropRulesSampler`` drops them when
they start; ``DropRulesSpanProcessor`` applies the same rules to finished
spans, once every attribute is known.

.. code-block:: python

    from opentelemetry.sampler.drop_rules import (
        DropRulesConfig,
        DropRulesSampler,
    )
    from opentelemetry.sdk.trace import TracerProvider

    provider = TracerProvider(
        sampler=DropRulesSampler(
            DropRulesConfig(ignore_paths={"/ping", "/healthz"})
        )
    )

The sampler can also be selected with ``OTEL_TRACES_SAMPLER=drop_rules``; it
then reads its rules from the ``OTEL_PYTHON_DROP_RULES_*`` environment
variables.
"""

__all__ = [
    "DropRulesConfig",
    "DropRulesEngine",
    "DropRulesSampler",
    "DropRulesSpanProcessor",
    "drop_rules_sampler_factory",
]

from ._config import DropRulesConfig
from ._engine import DropRulesEngine
from ._processor import DropRulesSpanProcessor
from ._sampler import DropRulesSampler, drop_rules_sampler_factory
