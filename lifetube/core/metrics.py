"""
Prometheus counters for the ingestion pipeline (exposed under /metrics).
"""
from __future__ import annotations

from prometheus_client import Counter

UPLOADS_TOTAL = Counter(
    "lifetube_uploads_total",
    "Video uploads by outcome",
    ["outcome"],
)

PROBE_FAILURES_TOTAL = Counter(
    "lifetube_probe_failures_total",
    "Duration probes that fell back to 0",
)

THUMBNAIL_FALLBACKS_TOTAL = Counter(
    "lifetube_thumbnail_fallbacks_total",
    "Uploads that received the placeholder thumbnail",
)

ORPHANED_ASSETS_TOTAL = Counter(
    "lifetube_orphaned_assets_total",
    "Stored assets left without a metadata row",
    ["reason"],
)
