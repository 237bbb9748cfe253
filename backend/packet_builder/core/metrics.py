"""Prometheus metrics instrumentation."""

from __future__ import annotations

from fastapi import Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

REGISTRY = CollectorRegistry()

REQUEST_COUNT = Counter(
    "pktb_requests_total",
    "Total HTTP requests",
    labelnames=("endpoint", "method", "status"),
    registry=REGISTRY,
)

REQUEST_LATENCY = Histogram(
    "pktb_request_latency_seconds",
    "Latency of HTTP requests",
    labelnames=("endpoint", "method"),
    registry=REGISTRY,
)

PACKETS_BUILT = Counter(
    "pktb_packets_total",
    "Packet assembly attempts by outcome",
    labelnames=("mode", "status"),
    registry=REGISTRY,
)

ATTACHMENTS_SKIPPED = Counter(
    "pktb_attachments_skipped_total",
    "Attachments left out of a packet",
    labelnames=("mode", "reason"),
    registry=REGISTRY,
)

ASSEMBLY_DURATION = Histogram(
    "pktb_assembly_seconds",
    "Time spent assembling a packet archive",
    labelnames=("mode",),
    registry=REGISTRY,
)

PACKET_BYTES = Histogram(
    "pktb_packet_bytes",
    "Size of finalized packet archives",
    labelnames=("mode",),
    buckets=(1e4, 1e5, 1e6, 1e7, 5e7, 1e8, 5e8),
    registry=REGISTRY,
)


def metrics_response() -> Response:
    """Return Prometheus metrics as an HTTP response."""
    payload = generate_latest(REGISTRY)
    return Response(content=payload, media_type=CONTENT_TYPE_LATEST)


__all__ = [
    "REGISTRY",
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "PACKETS_BUILT",
    "ATTACHMENTS_SKIPPED",
    "ASSEMBLY_DURATION",
    "PACKET_BYTES",
    "metrics_response",
]
