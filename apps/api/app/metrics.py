from prometheus_client import Counter, Histogram, Gauge, CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response
from fastapi import APIRouter


ADAPTER_ERRORS = Counter("adapter_errors_total", "Adapter error count", ["adapter"])
CACHE_HITS = Counter("availability_cache_hits_total", "Availability served from a fresh cache group")
CACHE_MISSES = Counter("availability_cache_misses_total", "Availability requests that needed a refresh")

REFRESH_LATENCY_MS = Histogram(
    "availability_refresh_latency_ms",
    "Fetch + merge + persist latency in milliseconds",
    buckets=(25, 50, 100, 250, 500, 1000, 2000, 4000, 8000, 16000),
)

# Records in each merged result, by the adapter that won the key
RECORDS_MERGED = Counter(
    "availability_records_merged_total",
    "Merged availability records by winning source",
    ["source"],
)

# Callers that awaited a refresh already in flight for the same group
INFLIGHT_JOINS = Counter("availability_inflight_joins_total", "Refreshes coalesced onto an in-flight one")

JOB_SUCCESS = Counter("jobs_success_total", "Successful background jobs", ["job"])
JOB_FAILURE = Counter("jobs_failure_total", "Failed background jobs", ["job"])

# Total API errors (incremented on 5xx)
REQUEST_ERRORS = Counter(
    "request_errors_total",
    "Total API errors",
    ["route"],
)

# Build info gauge (set once at startup)
BUILD_INFO = Gauge(
    "build_info",
    "Build info tagged with version, sha, env",
    labelnames=["version", "sha", "env"],
)


router = APIRouter()


@router.get("/metrics")
async def metrics():
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
