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

import dataclasses
import unittest
from unittest.mock import patch

from opentelemetry.sampler.drop_rules._config import (
    DEFAULT_DROP_SPAN_NAMES,
    DEFAULT_IGNORE_PATHS,
    OTEL_PYTHON_DROP_RULES_CLIENT_SUBSTRINGS,
    OTEL_PYTHON_DROP_RULES_HEALTH_CHECK_SUFFIXES,
    OTEL_PYTHON_DROP_RULES_IGNORE_PATHS,
    OTEL_PYTHON_DROP_RULES_INTERNAL_SUFFIXES,
    OTEL_PYTHON_DROP_RULES_SPAN_NAMES,
    DropRulesConfig,
)


class TestDropRulesConfig(unittest.TestCase):
    def test_defaults(self):
        config = DropRulesConfig()

        self.assertEqual(config.drop_span_names, DEFAULT_DROP_SPAN_NAMES)
        self.assertEqual(config.internal_suffixes, ("_st",))
        self.assertEqual(config.client_substrings, ("redis",))
        self.assertEqual(config.health_check_suffixes, ("ping",))
        self.assertEqual(
            config.ignore_paths,
            frozenset({"/ping", "/sse/connect", "/listener"}),
        )

    def test_values_are_frozen(self):
        config = DropRulesConfig(
            drop_span_names=["a", "b"],
            internal_suffixes=["_job"],
            ignore_paths=["/healthz"],
        )

        self.assertEqual(config.drop_span_names, frozenset({"a", "b"}))
        self.assertEqual(config.internal_suffixes, ("_job",))
        self.assertEqual(config.ignore_paths, frozenset({"/healthz"}))
        with self.assertRaises(dataclasses.FrozenInstanceError):
            config.ignore_paths = frozenset()

    def test_single_string_is_one_entry(self):
        config = DropRulesConfig(
            internal_suffixes="_job", ignore_paths="/healthz"
        )

        self.assertEqual(config.internal_suffixes, ("_job",))
        self.assertEqual(config.ignore_paths, frozenset({"/healthz"}))

    def test_empty_patterns_are_rejected(self):
        with self.assertLogs(
            "opentelemetry.sampler.drop_rules._config", level="WARNING"
        ) as logs:
            config = DropRulesConfig(client_substrings=["", "memcached"])

        self.assertEqual(config.client_substrings, ("memcached",))
        self.assertIn("client_substrings", logs.output[0])


class TestDropRulesConfigFromEnv(unittest.TestCase):
    @patch.dict("os.environ", {}, clear=True)
    def test_unset_keeps_defaults(self):
        self.assertEqual(DropRulesConfig.from_env(), DropRulesConfig())

    @patch.dict(
        "os.environ",
        {
            OTEL_PYTHON_DROP_RULES_SPAN_NAMES: "noisy.run, other.run",
            OTEL_PYTHON_DROP_RULES_INTERNAL_SUFFIXES: "_job,_cron",
            OTEL_PYTHON_DROP_RULES_CLIENT_SUBSTRINGS: "memcached",
            OTEL_PYTHON_DROP_RULES_HEALTH_CHECK_SUFFIXES: "healthz",
            OTEL_PYTHON_DROP_RULES_IGNORE_PATHS: "/healthz, ,/ready",
        },
        clear=True,
    )
    def test_lists_from_environment(self):
        config = DropRulesConfig.from_env()

        self.assertEqual(
            config.drop_span_names, frozenset({"noisy.run", "other.run"})
        )
        self.assertEqual(config.internal_suffixes, ("_job", "_cron"))
        self.assertEqual(config.client_substrings, ("memcached",))
        self.assertEqual(config.health_check_suffixes, ("healthz",))
        self.assertEqual(
            config.ignore_paths, frozenset({"/healthz", "/ready"})
        )

    @patch.dict(
        "os.environ",
        {
            OTEL_PYTHON_DROP_RULES_CLIENT_SUBSTRINGS: "",
            OTEL_PYTHON_DROP_RULES_IGNORE_PATHS: "",
        },
        clear=True,
    )
    def test_empty_clears_list(self):
        config = DropRulesConfig.from_env()

        self.assertEqual(config.client_substrings, ())
        self.assertEqual(config.ignore_paths, frozenset())
        self.assertEqual(config.drop_span_names, DEFAULT_DROP_SPAN_NAMES)
        self.assertNotEqual(DEFAULT_IGNORE_PATHS, config.ignore_paths)
