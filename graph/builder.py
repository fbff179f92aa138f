# graph/builder.py
# Построение списка узлов из списка рёбер

from graph.models import Edge, Node


def build_node_list(edges: list[Edge], namespace: str = "") -> list[Node]:
    """Уникальные концы рёбер в порядке первого появления (from, затем to).

    Пустой ``namespace`` — без фильтра; иначе только узлы этого namespace.
    """
    nodes: list[Node] = []
    seen: set[tuple[str, str, str]] = set()

    for edge in edges:
        endpoints = (
            (edge.from_key(), edge.from_app, edge.from_version, edge.from_namespace),
            (edge.to_key(), edge.to_app, edge.to_version, edge.to_namespace),
        )
        for key, app, version, ns in endpoints:
            if key in seen:
                continue
            if namespace and ns != namespace:
                continue
            nodes.append(Node(app=app, version=version, namespace=ns))
            seen.add(key)

    return nodes
