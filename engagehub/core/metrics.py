"""
Prometheus metrics for monitoring.

Metrics collected:
- HTTP request duration (histogram), count by status code, in-progress
- Ingestion, auto-reply and lead generation counters
- Scheduler job runs, durations and per-tenant failures
"""

from prometheus_client import Counter, Gauge, Histogram, Info


# Application info
app_info = Info("engagehub_app", "EngageHub application information")

# HTTP metrics
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0),
)

http_requests_in_progress = Gauge(
    "http_requests_in_progress",
    "Number of HTTP requests in progress",
    ["method", "endpoint"],
)

# Engagement pipeline
comments_ingested_total = Counter(
    "comments_ingested_total",
    "Inbound events persisted by the ingestion gateway",
    ["platform", "kind"],
)

ingest_duplicates_total = Counter(
    "ingest_duplicates_total",
    "Inbound events ignored because they were already stored",
    ["kind"],
)

auto_replies_total = Counter(
    "auto_replies_total",
    "Reply attempts by outcome",
    ["platform", "outcome"],
)

leads_generated_total = Counter(
    "leads_generated_total",
    "Leads created from comments",
    ["source"],
)

# Scheduler
scheduler_job_runs_total = Counter(
    "scheduler_job_runs_total",
    "Scheduler sweeps by job and status",
    ["job", "status"],
)

scheduler_job_duration_seconds = Histogram(
    "scheduler_job_duration_seconds",
    "Scheduler sweep duration in seconds",
    ["job"],
    buckets=(0.1, 0.5, 1.0, 5.0, 10.0, 30.0, 60.0, 300.0, 600.0),
)

scheduler_tenant_failures_total = Counter(
    "scheduler_tenant_failures_total",
    "Tenant runs that failed or timed out within a sweep",
    ["job"],
)
