"""Prometheus metrics for FlowMap.

Pre-defined metrics for topology aggregation and IP enrichment.
"""

from prometheus_client import Counter, Gauge, Histogram

# Topology aggregation metrics
FLOWS_AGGREGATED = Counter(
    "flowmap_flows_aggregated_total",
    "Total number of flow records folded into address pairs",
)

FLOWS_SKIPPED = Counter(
    "flowmap_flows_skipped_total",
    "Total number of flow records skipped during aggregation",
    ["reason"],
)

COORDINATE_FALLBACKS = Counter(
    "flowmap_coordinate_fallbacks_total",
    "Total number of addresses placed at the fallback location",
)

AGGREGATION_DURATION = Histogram(
    "flowmap_aggregation_duration_seconds",
    "Time to aggregate flows for one exporter",
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)

FLOW_STORE_ERRORS = Counter(
    "flowmap_flow_store_errors_total",
    "Total number of failed flow store queries",
)

# Enrichment metrics
ENRICHMENTS = Counter(
    "flowmap_enrichments_total",
    "Total number of IP enrichments computed",
    ["kind"],
)

ENRICHMENTS_IN_FLIGHT = Gauge(
    "flowmap_enrichments_in_flight",
    "Number of enrichments currently running",
)

ENRICHMENT_CACHE_HITS = Counter(
    "flowmap_enrichment_cache_hits_total",
    "Total number of enrichment cache hits",
)

ENRICHMENT_CACHE_MISSES = Counter(
    "flowmap_enrichment_cache_misses_total",
    "Total number of enrichment cache misses",
)

ENRICHMENT_CACHE_SIZE = Gauge(
    "flowmap_enrichment_cache_size",
    "Current size of the enrichment cache",
)

BATCH_SIZE = Histogram(
    "flowmap_enrichment_batch_size",
    "Number of addresses per batch enrichment",
    buckets=[1, 5, 10, 25, 50, 100, 250, 500, 1000],
)

GEOIP_LOOKUPS = Counter(
    "flowmap_geoip_lookups_total",
    "Total number of GeoIP lookups",
    ["status"],
)

DNS_LOOKUPS = Counter(
    "flowmap_dns_lookups_total",
    "Total number of reverse DNS lookups performed",
    ["status"],
)
