"""Trace context propagators.

The routing layer in front of the services may be instrumented with Datadog
(x-datadog-* headers) or with OpenTelemetry (W3C traceparent). Both are
accepted; W3C wins when a request carries both.
"""

import re

from opentelemetry import trace
from opentelemetry.baggage.propagation import W3CBaggagePropagator
from opentelemetry.context import Context
from opentelemetry.propagators.composite import CompositePropagator
from opentelemetry.propagators.textmap import (
    CarrierT,
    Getter,
    Setter,
    TextMapPropagator,
    default_getter,
    default_setter,
)
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator

TRACE_ID_HEADER = "x-datadog-trace-id"
PARENT_ID_HEADER = "x-datadog-parent-id"
SAMPLING_PRIORITY_HEADER = "x-datadog-sampling-priority"
TAGS_HEADER = "x-datadog-tags"

# Upper 64 bits of a 128-bit trace id, hex encoded, inside x-datadog-tags
_TRACE_ID_HIGH_TAG = "_dd.p.tid"
_LOW_64_BITS = (1 << 64) - 1
_HEX_64 = re.compile(r"^[0-9a-fA-F]{16}$")
_INTEGER = re.compile(r"^-?[0-9]+$")


def _parse_uint64(value: str | None) -> int | None:
    if not value or not (value.isascii() and value.isdigit()):
        return None
    number = int(value)
    if number == 0 or number > _LOW_64_BITS:
        return None
    return number


def _parse_tags(value: str | None) -> dict[str, str]:
    tags: dict[str, str] = {}
    if not value:
        return tags
    for item in value.split(","):
        key, sep, tag_value = item.partition("=")
        if sep:
            tags[key.strip()] = tag_value.strip()
    return tags


class DatadogPropagator(TextMapPropagator):
    """Extract and inject Datadog's x-datadog-* propagation headers.

    Datadog ids are unsigned 64-bit decimals. A 128-bit trace id is split:
    the low half goes in x-datadog-trace-id, the high half as hex in the
    ``_dd.p.tid`` entry of x-datadog-tags.
    """

    def extract(
        self,
        carrier: CarrierT,
        context: Context | None = None,
        getter: Getter[CarrierT] = default_getter,
    ) -> Context:
        if context is None:
            context = Context()

        trace_id = _parse_uint64(self._first(getter, carrier, TRACE_ID_HEADER))
        span_id = _parse_uint64(self._first(getter, carrier, PARENT_ID_HEADER))
        if trace_id is None or span_id is None:
            return context

        high = _parse_tags(self._first(getter, carrier, TAGS_HEADER)).get(_TRACE_ID_HIGH_TAG)
        if high is not None and _HEX_64.match(high):
            trace_id |= int(high, 16) << 64

        # Missing or malformed priority keeps the request sampled
        priority = self._first(getter, carrier, SAMPLING_PRIORITY_HEADER)
        sampled = priority is None or not _INTEGER.match(priority) or int(priority) > 0

        span_context = trace.SpanContext(
            trace_id=trace_id,
            span_id=span_id,
            is_remote=True,
            trace_flags=trace.TraceFlags(
                trace.TraceFlags.SAMPLED if sampled else trace.TraceFlags.DEFAULT
            ),
        )
        return trace.set_span_in_context(trace.NonRecordingSpan(span_context), context)

    def inject(
        self,
        carrier: CarrierT,
        context: Context | None = None,
        setter: Setter[CarrierT] = default_setter,
    ) -> None:
        span_context = trace.get_current_span(context).get_span_context()
        if not span_context.is_valid:
            return

        setter.set(carrier, TRACE_ID_HEADER, str(span_context.trace_id & _LOW_64_BITS))
        setter.set(carrier, PARENT_ID_HEADER, str(span_context.span_id))
        setter.set(
            carrier,
            SAMPLING_PRIORITY_HEADER,
            "1" if span_context.trace_flags.sampled else "0",
        )
        high = span_context.trace_id >> 64
        if high:
            setter.set(carrier, TAGS_HEADER, f"{_TRACE_ID_HIGH_TAG}={high:016x}")

    @property
    def fields(self) -> set[str]:
        return {TRACE_ID_HEADER, PARENT_ID_HEADER, SAMPLING_PRIORITY_HEADER, TAGS_HEADER}

    @staticmethod
    def _first(getter: Getter[CarrierT], carrier: CarrierT, key: str) -> str | None:
        values = getter.get(carrier, key)
        if not values:
            return None
        return values[0]


def build_propagator() -> CompositePropagator:
    """Datadog first so that a W3C traceparent, when present, overrides it."""
    return CompositePropagator(
        [DatadogPropagator(), W3CBaggagePropagator(), TraceContextTextMapPropagator()]
    )
