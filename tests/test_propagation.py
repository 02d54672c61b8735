"""Unit tests for the Datadog header propagator."""

import pytest
from opentelemetry import trace
from opentelemetry.context import Context

from random_status.propagation import (
    PARENT_ID_HEADER,
    SAMPLING_PRIORITY_HEADER,
    TAGS_HEADER,
    TRACE_ID_HEADER,
    DatadogPropagator,
    build_propagator,
)
from tests.factories import REMOTE_SPAN_ID, REMOTE_TRACE_ID, TRACEPARENT


def _span_context(context: Context) -> trace.SpanContext:
    return trace.get_current_span(context).get_span_context()


def test_extract_64_bit_ids() -> None:
    carrier = {TRACE_ID_HEADER: "1234567890123456789", PARENT_ID_HEADER: "987654321"}
    span_context = _span_context(DatadogPropagator().extract(carrier))

    assert span_context.is_valid
    assert span_context.is_remote
    assert span_context.trace_id == 1234567890123456789
    assert span_context.span_id == 987654321
    assert span_context.trace_flags.sampled


def test_extract_128_bit_trace_id_from_tags() -> None:
    carrier = {
        TRACE_ID_HEADER: str(REMOTE_TRACE_ID & 0xFFFFFFFFFFFFFFFF),
        PARENT_ID_HEADER: "42",
        TAGS_HEADER: f"_dd.p.dm=-0,_dd.p.tid={REMOTE_TRACE_ID >> 64:016x}",
    }
    assert _span_context(DatadogPropagator().extract(carrier)).trace_id == REMOTE_TRACE_ID


@pytest.mark.parametrize("priority, sampled", [("2", True), ("1", True), ("0", False), ("-1", False)])
def test_extract_sampling_priority(priority: str, sampled: bool) -> None:
    carrier = {
        TRACE_ID_HEADER: "1",
        PARENT_ID_HEADER: "2",
        SAMPLING_PRIORITY_HEADER: priority,
    }
    assert _span_context(DatadogPropagator().extract(carrier)).trace_flags.sampled is sampled


@pytest.mark.parametrize(
    "carrier",
    [
        {},
        {TRACE_ID_HEADER: "123"},
        {PARENT_ID_HEADER: "123"},
        {TRACE_ID_HEADER: "0", PARENT_ID_HEADER: "1"},
        {TRACE_ID_HEADER: "abc", PARENT_ID_HEADER: "1"},
        {TRACE_ID_HEADER: "-5", PARENT_ID_HEADER: "1"},
        {TRACE_ID_HEADER: str(1 << 64), PARENT_ID_HEADER: "1"},
    ],
)
def test_extract_ignores_missing_or_invalid_ids(carrier: dict[str, str]) -> None:
    assert not _span_context(DatadogPropagator().extract(carrier)).is_valid


def test_extract_ignores_malformed_high_bits() -> None:
    carrier = {TRACE_ID_HEADER: "7", PARENT_ID_HEADER: "8", TAGS_HEADER: "_dd.p.tid=zz"}
    assert _span_context(DatadogPropagator().extract(carrier)).trace_id == 7


def test_inject_writes_decimal_ids_and_high_bits() -> None:
    span_context = trace.SpanContext(
        trace_id=REMOTE_TRACE_ID,
        span_id=REMOTE_SPAN_ID,
        is_remote=False,
        trace_flags=trace.TraceFlags(trace.TraceFlags.SAMPLED),
    )
    context = trace.set_span_in_context(trace.NonRecordingSpan(span_context))
    carrier: dict[str, str] = {}

    DatadogPropagator().inject(carrier, context)

    assert carrier[TRACE_ID_HEADER] == str(REMOTE_TRACE_ID & 0xFFFFFFFFFFFFFFFF)
    assert carrier[PARENT_ID_HEADER] == str(REMOTE_SPAN_ID)
    assert carrier[SAMPLING_PRIORITY_HEADER] == "1"
    assert carrier[TAGS_HEADER] == f"_dd.p.tid={REMOTE_TRACE_ID >> 64:016x}"


def test_inject_without_span_writes_nothing() -> None:
    carrier: dict[str, str] = {}
    DatadogPropagator().inject(carrier, Context())
    assert carrier == {}


def test_composite_prefers_traceparent() -> None:
    carrier = {
        "traceparent": TRACEPARENT,
        TRACE_ID_HEADER: "1",
        PARENT_ID_HEADER: "2",
    }
    span_context = _span_context(build_propagator().extract(carrier))
    assert span_context.trace_id == REMOTE_TRACE_ID
    assert span_context.span_id == REMOTE_SPAN_ID


def test_composite_falls_back_to_datadog() -> None:
    carrier = {TRACE_ID_HEADER: "11", PARENT_ID_HEADER: "22"}
    span_context = _span_context(build_propagator().extract(carrier))
    assert (span_context.trace_id, span_context.span_id) == (11, 22)


def test_composite_fields_cover_both_header_families() -> None:
    fields = build_propagator().fields
    assert {"traceparent", "baggage", TRACE_ID_HEADER, PARENT_ID_HEADER} <= fields
