# graph/models.py
# Модели: Sample, QueryResult, Node, Edge, GraphResponse

import math
from dataclasses import dataclass, field

from core.errors import UnexpectedResultTypeError

VECTOR = "vector"
SCALAR = "scalar"
MATRIX = "matrix"
STRING = "string"

FULL = "full"
PARTIAL = "partial"


@dataclass(frozen=True)
class Sample:
    """Одна точка instant-запроса: набор лейблов + значение."""
    metric: dict[str, str] = field(default_factory=dict)
    value: float = 0.0
    timestamp: float = 0.0

    def label(self, name: str) -> str:
        """Значение лейбла или "" если его нет."""
        return self.metric.get(name, "")

    def is_finite(self) -> bool:
        """False для NaN и ±Inf (histogram_quantile в бакете +Inf)."""
        return math.isfinite(self.value)


@dataclass(frozen=True)
class QueryResult:
    """Результат запроса: тип (vector/scalar/...), значение, предупреждения."""
    result_type: str
    value: object = None
    warnings: tuple[str, ...] = ()

    def as_vector(self) -> list[Sample]:
        """Возвращает сэмплы; любой другой тип результата — ошибка."""
        if self.result_type != VECTOR:
            raise UnexpectedResultTypeError(self.result_type)
        return list(self.value or [])


@dataclass
class Node:
    """Узел графа — версия приложения в namespace."""
    app: str
    version: str
    namespace: str
    stats: dict[str, float] = field(default_factory=dict)

    def key(self) -> tuple[str, str, str]:
        return (self.app, self.version, self.namespace)

    def to_dict(self) -> dict:
        return {
            "app": self.app,
            "version": self.version,
            "namespace": self.namespace,
            "stats": dict(self.stats),
        }


@dataclass
class Edge:
    """Ребро графа — наблюдаемый трафик from → to."""
    from_namespace: str
    from_app: str
    from_version: str
    to_namespace: str
    to_app: str
    to_version: str
    stats: dict[str, float] = field(default_factory=dict)

    def from_key(self) -> tuple[str, str, str]:
        return (self.from_app, self.from_version, self.from_namespace)

    def to_key(self) -> tuple[str, str, str]:
        return (self.to_app, self.to_version, self.to_namespace)

    def to_dict(self) -> dict:
        return {
            "fromNamespace": self.from_namespace,
            "fromApp": self.from_app,
            "fromVersion": self.from_version,
            "toNamespace": self.to_namespace,
            "toApp": self.to_app,
            "toVersion": self.to_version,
            "stats": dict(self.stats),
        }


@dataclass
class GraphResponse:
    """Ответ API: узлы, рёбра и маркер целостности ("full" | "partial")."""
    nodes: list[Node] = field(default_factory=list)
    edges: list[Edge] = field(default_factory=list)
    integrity: str = FULL

    def to_dict(self) -> dict:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
            "integrity": self.integrity,
        }
