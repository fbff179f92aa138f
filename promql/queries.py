# promql/queries.py
"""PromQL templates and label-selector construction.

All templates use ``str.format`` fields; literal braces of label matchers
are doubled.
"""

# ---------------------------------------------------------------------------
# Cluster-wide (cAdvisor) usage
# ---------------------------------------------------------------------------
CLUSTER_MEMORY_USAGE = (
    'sum (container_memory_working_set_bytes{id="/"}) / sum (machine_memory_bytes{}) * 100'
)
CLUSTER_CPU_USAGE_1M = (
    'sum (rate (container_cpu_usage_seconds_total{id="/"}[1m])) / sum (machine_cpu_cores) * 100'
)
CLUSTER_FILESYSTEM_USAGE = (
    'sum (container_fs_usage_bytes{device=~"^/dev/[sv]d[a-z][1-9]$",id="/"}) '
    '/ sum (container_fs_limit_bytes{device=~"^/dev/[sv]d[a-z][1-9]$",id="/"}) * 100'
)
OVERALL_SUCCESS_RATE = (
    'sum(irate(response_total{{classification="success", direction="inbound"}}[{window}])) '
    '/ sum(irate(response_total{{direction="inbound"}}[{window}]))'
)

# ---------------------------------------------------------------------------
# Per-entity / per-direction stats
# ---------------------------------------------------------------------------
LATENCY_QUANTILE = (
    "histogram_quantile({quantile}, sum(irate(response_latency_ms_bucket{labels}[{window}])) by (le, {by}))"
)
REQUEST_RATE = "sum(irate(request_total{labels}[{window}])) by ({by})"
SUCCESS_RATE = (
    "sum(irate(response_total{success_labels}[{window}])) by ({by}) "
    "/ sum(irate(response_total{labels}[{window}])) by ({by})"
)

# ---------------------------------------------------------------------------
# Traffic identity (edge correlation input)
# ---------------------------------------------------------------------------
INBOUND_IDENTITY = (
    'sum(irate(request_total{{direction="inbound"}}[{window}])) '
    "by (namespace, app, version, {resource}, client_id)"
)
OUTBOUND_IDENTITY = (
    'sum(irate(request_total{{direction="outbound"}}[{window}])) '
    "by (namespace, app, version, dst_namespace, dst_{resource})"
)

# quantile value -> stats key; 0.95 is reported as p90ms, dashboards read that name
QUANTILES: tuple[tuple[str, str], ...] = (
    ("0.5", "p50ms"),
    ("0.95", "p90ms"),
    ("0.99", "p99ms"),
)
RPS = "rps"
SUCCESS = "successRate"
METRIC_NAMES: tuple[str, ...] = tuple(name for _, name in QUANTILES) + (RPS, SUCCESS)

ENTITY_GROUPING = "app"
DIRECTION_LATENCY_GROUPING = "app,version,deployment"
DIRECTION_RATE_GROUPING = "app,version"


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def label_selector(direction: str, app: str = "", version: str = "", classification: str = "") -> str:
    """Build ``{classification=..,direction=..,app=..,version=..}``.

    Empty ``app``/``version``/``classification`` clauses are left out
    entirely rather than matched as wildcards.
    """
    parts = []
    if classification:
        parts.append(f'classification="{_escape(classification)}"')
    parts.append(f'direction="{_escape(direction)}"')
    if app:
        parts.append(f'app="{_escape(app)}"')
    if version:
        parts.append(f'version="{_escape(version)}"')
    return "{" + ",".join(parts) + "}"


def latency_query(quantile: str, labels: str, window: str, by: str = ENTITY_GROUPING) -> str:
    return LATENCY_QUANTILE.format(quantile=quantile, labels=labels, window=window, by=by)


def request_rate_query(labels: str, window: str, by: str = ENTITY_GROUPING) -> str:
    return REQUEST_RATE.format(labels=labels, window=window, by=by)


def success_rate_query(direction: str, window: str, app: str = "", version: str = "",
                       by: str = ENTITY_GROUPING) -> str:
    return SUCCESS_RATE.format(
        success_labels=label_selector(direction, app, version, classification="success"),
        labels=label_selector(direction, app, version),
        window=window,
        by=by,
    )


def overall_success_rate_query(window: str) -> str:
    return OVERALL_SUCCESS_RATE.format(window=window)


def inbound_identity_query(window: str, resource_type: str = "deployment") -> str:
    return INBOUND_IDENTITY.format(window=window, resource=resource_type)


def outbound_identity_query(window: str, resource_type: str = "deployment") -> str:
    return OUTBOUND_IDENTITY.format(window=window, resource=resource_type)
