# core/config.py
"""Centralized configuration for meshscope.

Every value can be overridden through environment variables; the defaults
match a stock Linkerd control plane with its bundled Prometheus.
"""

from typing import Literal

from pydantic_settings import BaseSettings

VERSION = "v0.1.0"


class PrometheusSettings(BaseSettings):
    """Metrics backend connection.

    Environment variables:
        MESHSCOPE_PROMETHEUS_URL: base URL of the Prometheus HTTP API
        MESHSCOPE_PROMETHEUS_QUERY_TIMEOUT: per-call HTTP timeout in seconds (default: 10)
    """

    url: str = "http://linkerd-prometheus.linkerd.svc.cluster.local:9090"
    query_timeout: float = 10.0

    model_config = {"env_prefix": "MESHSCOPE_PROMETHEUS_"}


class GraphSettings(BaseSettings):
    """Graph assembly.

    Environment variables:
        MESHSCOPE_GRAPH_WINDOW_DEFAULT: range window used when a request gives none (default: 30s)
        MESHSCOPE_GRAPH_RESOURCE_TYPE: Kubernetes resource label used as join key (default: deployment)
        MESHSCOPE_GRAPH_GRAPH_TIMEOUT: deadline for one graph request in seconds (default: 60)
        MESHSCOPE_GRAPH_CLUSTER_TIMEOUT: deadline for one cluster query in seconds (default: 10)
    """

    window_default: str = "30s"
    resource_type: str = "deployment"
    graph_timeout: float = 60.0
    cluster_timeout: float = 10.0

    model_config = {"env_prefix": "MESHSCOPE_GRAPH_"}


class AppSettings(BaseSettings):
    """Application-level configuration."""

    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 8084

    prometheus: PrometheusSettings = PrometheusSettings()
    graph: GraphSettings = GraphSettings()

    model_config = {"env_prefix": "MESHSCOPE_"}


# Singleton instance — importable from anywhere
settings = AppSettings()
