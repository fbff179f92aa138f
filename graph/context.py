# graph/context.py
# Контекст одного запроса: клиент метрик + параметры окна

import logging
from dataclasses import dataclass
from datetime import datetime

from graph.models import Sample
from promql.client import QueryClient

logger = logging.getLogger(__name__)


@dataclass
class QueryContext:
    """Everything a graph request needs to talk to the metrics backend.

    Built per request and passed explicitly through correlator, stats
    aggregator and assembler.
    """
    client: QueryClient
    window: str = "30s"
    resource_type: str = "deployment"
    now: datetime | None = None

    async def vector(self, expr: str) -> list[Sample]:
        """Run ``expr`` and return its samples; non-vector results raise."""
        logger.debug("Performing query: %s", expr)
        result = await self.client.query(expr, self.now)
        if result.warnings:
            logger.warning("query warnings: %s", list(result.warnings))
        return result.as_vector()
