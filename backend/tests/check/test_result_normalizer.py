"""Tests for flattening check outcomes into display rows.

**Feature: check-host, Property 3: Result Normalization**

Tests that:
- Each check type's payload shape is summarized into its own row columns
- Failed outcomes render as error rows
- Payloads are never modified by normalization
"""

import copy

from hypothesis import given, settings, strategies as st

from checkhost.modules.check.normalizer import (
    EMPTY,
    ERROR_LABEL,
    OK_LABEL,
    country_code,
    location_label,
    normalize_outcome,
    normalize_outcomes,
    summarize_dns,
    summarize_ping,
)
from checkhost.modules.check.schemas import AgentOutcome, AgentRef, CheckType, FALLBACK_AGENT


BERLIN = AgentRef(
    id="agent-1",
    name="Berlin 1",
    server_ip="10.0.0.1",
    agent_country="Germany",
    agent_city="Berlin",
    agent_country_code="de",
    country_emoji="🇩🇪",
)


def outcome(check_type: CheckType, payload, agent: AgentRef = BERLIN) -> AgentOutcome:
    return AgentOutcome(success=True, check_type=check_type, agent=agent, result=payload)


class TestAgentLabels:
    """Tests for location and country columns."""

    def test_location_from_country_and_city(self) -> None:
        assert location_label(BERLIN) == "Germany, Berlin"

    def test_location_falls_back_to_name(self) -> None:
        assert location_label(FALLBACK_AGENT) == "Local Worker"

    def test_country_code_prefers_explicit_code(self) -> None:
        assert country_code(BERLIN) == "DE"

    def test_country_code_derived_from_country_name(self) -> None:
        agent = AgentRef(id="a", agent_country="France")

        assert country_code(agent) == "FR"

    def test_country_code_empty_when_unknown(self) -> None:
        assert country_code(AgentRef(id="a")) == ""


class TestPingRows:
    """Tests for ping summaries."""

    def test_ping_counts_and_rtt(self) -> None:
        payload = {
            "host": "example.com",
            "result": [[
                {"status": "OK", "time": 0.010, "ip": "93.184.216.34"},
                {"status": "OK", "time": 0.020},
                {"status": "TIMEOUT"},
                {"status": "OK", "time": 0.030},
            ]],
        }

        row = normalize_outcome(outcome(CheckType.PING, payload))

        assert row.success is True
        assert row.result == "3 / 4"
        assert row.rtt == "10.0 / 20.0 / 30.0 ms"
        assert row.ip == "93.184.216.34"
        assert row.location == "Germany, Berlin"
        assert row.country_code == "DE"

    def test_ping_all_lost(self) -> None:
        payload = {"host": "example.com", "result": [[{"status": "TIMEOUT"}, {"status": "TIMEOUT"}]]}

        row = normalize_outcome(outcome(CheckType.PING, payload))

        assert row.success is False
        assert row.result == "0 / 2"
        assert row.rtt == EMPTY
        assert row.ip == "example.com"

    def test_ping_accepts_flat_packet_list(self) -> None:
        summary = summarize_ping([{"status": "OK", "time": 0.005}])

        assert summary["success_count"] == 1
        assert summary["min_time"] == 5.0


class TestHttpRows:
    """Tests for http summaries."""

    def test_http_success(self) -> None:
        payload = {"result": [{"success": 1, "time": 0.234, "statusCode": 200, "message": "OK", "ip": "93.184.216.34"}]}

        row = normalize_outcome(outcome(CheckType.HTTP, payload))

        assert row.success is True
        assert row.result == OK_LABEL
        assert row.time == "234 ms"
        assert row.status_code == "200"
        assert row.ip == "93.184.216.34"

    def test_http_without_data(self) -> None:
        row = normalize_outcome(outcome(CheckType.HTTP, {"result": None}))

        assert row.success is False
        assert row.result == ERROR_LABEL
        assert row.time == EMPTY
        assert row.status_code == EMPTY

    def test_http_time_given_as_string(self) -> None:
        payload = {"result": [{"success": 1, "time": "0.25", "statusCode": 200, "message": "OK"}]}

        row = normalize_outcome(outcome(CheckType.HTTP, payload))

        assert row.success is True
        assert row.time == "250 ms"

    def test_http_missing_or_garbled_time(self) -> None:
        for time in (None, "n/a"):
            payload = {"result": [{"success": 1, "time": time, "statusCode": 200}]}

            row = normalize_outcome(outcome(CheckType.HTTP, payload))

            assert row.success is True
            assert row.time == EMPTY
            assert row.status_code == "200"


class TestPortRows:
    """Tests for tcp and udp summaries."""

    def test_tcp_connected(self) -> None:
        payload = {"result": [{"time": 0.045, "address": "93.184.216.34"}]}

        row = normalize_outcome(outcome(CheckType.TCP, payload))

        assert row.success is True
        assert row.result == OK_LABEL
        assert row.time == "45 ms"
        assert row.ip == "93.184.216.34"

    def test_udp_error_shown_as_result(self) -> None:
        payload = {"result": {"error": "Connection refused", "address": "93.184.216.34"}}

        row = normalize_outcome(outcome(CheckType.UDP, payload))

        assert row.success is False
        assert row.result == "Connection refused"
        assert row.time == EMPTY

    def test_tcp_time_given_as_string(self) -> None:
        payload = {"result": [{"time": "0.02", "address": "93.184.216.34"}]}

        row = normalize_outcome(outcome(CheckType.TCP, payload))

        assert row.success is True
        assert row.time == "20 ms"

    def test_tcp_without_time_is_not_connected(self) -> None:
        for time in (None, "timeout"):
            payload = {"result": [{"time": time, "address": "93.184.216.34"}]}

            row = normalize_outcome(outcome(CheckType.TCP, payload))

            assert row.success is False
            assert row.result == ERROR_LABEL
            assert row.time == EMPTY


class TestDnsRows:
    """Tests for dns summaries."""

    def test_dns_records_deduplicated(self) -> None:
        payload = {"result": [
            {"A": ["93.184.216.34", "93.184.216.35"], "TTL": 300},
            {"A": ["93.184.216.34"], "AAAA": ["2606:2800:220:1::248"], "TTL": 120},
        ]}

        row = normalize_outcome(outcome(CheckType.DNS, payload))

        assert row.success is True
        assert row.a_records == "93.184.216.34, 93.184.216.35"
        assert row.aaaa_records == "2606:2800:220:1::248"
        assert row.ttl == "120 s"

    def test_dns_no_records(self) -> None:
        row = normalize_outcome(outcome(CheckType.DNS, {"result": [{}]}))

        assert row.success is False
        assert row.a_records == EMPTY
        assert row.ttl == EMPTY

    def test_summarize_dns_single_record(self) -> None:
        assert summarize_dns({"A": ["1.1.1.1"]})["a_records"] == ["1.1.1.1"]


class TestIpInfoAndFailures:
    """Tests for ip-info rows and failed outcomes."""

    def test_ip_info_rows_carry_info_list(self) -> None:
        info = [{"ip": "8.8.8.8", "country": "US", "asn": "AS15169"}]

        row = normalize_outcome(outcome(CheckType.IP_INFO, {"result": info}))

        assert row.success is True
        assert row.info == info

    def test_failed_outcome_renders_error(self) -> None:
        failed = AgentOutcome(
            success=False,
            check_type=CheckType.PING,
            agent=BERLIN,
            error="Worker API error: 500 boom",
        )

        row = normalize_outcome(failed)

        assert row.success is False
        assert row.result == ERROR_LABEL
        assert row.error == "Worker API error: 500 boom"

    def test_rows_follow_outcome_order(self) -> None:
        other = AgentRef(id="agent-2", name="Tokyo 1", agent_country="Japan", agent_city="Tokyo")
        outcomes = [
            outcome(CheckType.TCP, {"result": [{"time": 0.01}]}, agent=BERLIN),
            outcome(CheckType.TCP, {"result": [{"time": 0.02}]}, agent=other),
        ]

        rows = normalize_outcomes(outcomes)

        assert [r.location for r in rows] == ["Germany, Berlin", "Japan, Tokyo"]


# Strategy for arbitrary ping packets
packet = st.fixed_dictionaries({
    "status": st.sampled_from(["OK", "TIMEOUT", "ERROR"]),
    "time": st.one_of(st.none(), st.floats(min_value=0, max_value=5, allow_nan=False)),
})


class TestNormalizationDoesNotMutate:
    """Property tests for payload immutability."""

    @given(
        packets=st.lists(packet, max_size=10),
        check_type=st.sampled_from(list(CheckType)),
    )
    @settings(max_examples=100)
    def test_payload_unchanged_after_normalization(self, packets, check_type: CheckType) -> None:
        payload = {"host": "example.com", "result": [packets]}
        snapshot = copy.deepcopy(payload)

        normalize_outcome(outcome(check_type, payload))

        assert payload == snapshot

    @given(packets=st.lists(packet, max_size=10))
    @settings(max_examples=100)
    def test_ping_success_count_bounded_by_total(self, packets) -> None:
        summary = summarize_ping([packets])

        assert 0 <= summary["success_count"] <= summary["total_count"] == len(packets)
        assert summary["min_time"] - 1e-9 <= summary["avg_time"] <= summary["max_time"] + 1e-9
