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

import pytest

from opentelemetry.sampler.drop_rules import DropRulesConfig, DropRulesEngine
from opentelemetry.sdk.trace.sampling import Decision
from opentelemetry.trace import SpanKind

DROP = Decision.DROP
KEEP = Decision.RECORD_AND_SAMPLE


@pytest.fixture(name="engine")
def engine_fixture():
    return DropRulesEngine()


@pytest.mark.parametrize(
    "kind,name,expected",
    [
        # listed names are dropped whatever the kind
        (
            SpanKind.INTERNAL,
            "KafkaMessageListenerContainer$ListenerConsumer$$Lambda$.run",
            DROP,
        ),
        (
            SpanKind.SERVER,
            "org.apache.dubbo.metadata.InstanceMetadataChangedListener/echo",
            DROP,
        ),
        # scheduled jobs
        (SpanKind.INTERNAL, "heartbeat_st", DROP),
        (SpanKind.SERVER, "heartbeat_st", KEEP),
        (SpanKind.INTERNAL, "heartbeat_st.run", KEEP),
        # cache clients
        (SpanKind.CLIENT, "redis.get", DROP),
        (SpanKind.CLIENT, "GET myredis", DROP),
        (SpanKind.INTERNAL, "redis.get", KEEP),
        (SpanKind.CLIENT, "Redis.get", KEEP),
        # health checks
        (SpanKind.INTERNAL, "db.ping", DROP),
        (SpanKind.CLIENT, "db.ping", KEEP),
        (SpanKind.INTERNAL, "ping.db", KEEP),
        # everything else
        (SpanKind.SERVER, "GET /orders", KEEP),
        (SpanKind.PRODUCER, "orders send", KEEP),
        (SpanKind.INTERNAL, "", KEEP),
        (None, None, KEEP),
    ],
)
def test_name_rules(engine, kind, name, expected):
    assert engine.decide(kind, name, None) is expected


@pytest.mark.parametrize(
    "target,expected",
    [
        ("/ping", DROP),
        ("/ping?check=1", DROP),
        ("/sse/connect", DROP),
        ("/listener?timeout=30&group=a", DROP),
        ("/ping/", KEEP),
        ("/pingx", KEEP),
        ("/api/ping", KEEP),
        ("?/ping", KEEP),
        ("/orders", KEEP),
    ],
)
def test_ignored_paths(engine, target, expected):
    assert (
        engine.decide(SpanKind.SERVER, "GET", {"http.target": target})
        is expected
    )


def test_non_string_target(engine):
    assert engine.decide(SpanKind.SERVER, "GET", {"http.target": 7}) is KEEP


def test_missing_target(engine):
    assert engine.decide(SpanKind.SERVER, "GET", {}) is KEEP
    assert (
        engine.decide(SpanKind.SERVER, "GET", {"http.route": "/ping"})
        is KEEP
    )


def test_decision_is_stable(engine):
    attributes = {"http.target": "/orders?id=1"}
    first = engine.decide(SpanKind.SERVER, "GET /orders", attributes)
    assert engine.decide(SpanKind.SERVER, "GET /orders", attributes) is first
    assert attributes == {"http.target": "/orders?id=1"}


def test_custom_config():
    engine = DropRulesEngine(
        DropRulesConfig(
            drop_span_names={"noisy"},
            internal_suffixes=("_job",),
            client_substrings=("memcached",),
            health_check_suffixes=("healthz",),
            ignore_paths={"/healthz"},
        )
    )

    assert engine.decide(SpanKind.SERVER, "noisy", None) is DROP
    assert engine.decide(SpanKind.INTERNAL, "cleanup_job", None) is DROP
    assert engine.decide(SpanKind.INTERNAL, "heartbeat_st", None) is KEEP
    assert engine.decide(SpanKind.CLIENT, "memcached.get", None) is DROP
    assert engine.decide(SpanKind.CLIENT, "redis.get", None) is KEEP
    assert engine.decide(SpanKind.INTERNAL, "db.healthz", None) is DROP
    assert (
        engine.decide(SpanKind.SERVER, "GET", {"http.target": "/healthz"})
        is DROP
    )
    assert (
        engine.decide(SpanKind.SERVER, "GET", {"http.target": "/ping"})
        is KEEP
    )


def test_empty_config_keeps_everything():
    engine = DropRulesEngine(
        DropRulesConfig(
            drop_span_names=(),
            internal_suffixes=(),
            client_substrings=(),
            health_check_suffixes=(),
            ignore_paths=(),
        )
    )

    assert engine.decide(SpanKind.INTERNAL, "heartbeat_st", None) is KEEP
    assert engine.decide(SpanKind.CLIENT, "redis.get", None) is KEEP
    assert (
        engine.decide(SpanKind.SERVER, "GET", {"http.target": "/ping"})
        is KEEP
    )
