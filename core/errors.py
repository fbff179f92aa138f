# core/errors.py
"""Error taxonomy shared by the query client, the graph pipeline and the API."""

import math


class MeshScopeError(Exception):
    """Base class; ``status_code`` is the HTTP status the API renders."""

    status_code = 500


class QueryError(MeshScopeError):
    """The metrics backend could not be reached or rejected the query."""

    status_code = 502


class UnexpectedResultTypeError(MeshScopeError):
    """A query returned something other than the vector the caller needs."""

    def __init__(self, result_type: str, expected: str = "vector"):
        self.result_type = result_type
        self.expected = expected
        super().__init__(
            f"unexpected query result type (expected {expected}): {result_type}"
        )


class NaNStatsError(MeshScopeError):
    """A response about to leave the assembler carries a NaN or infinite stats value."""

    def __init__(self, kind: str, app: str, version: str, namespace: str, key: str,
                 value: float = float("nan")):
        self.kind = kind
        self.app = app
        self.version = version
        self.namespace = namespace
        self.key = key
        self.value = value
        label = "NaN" if math.isnan(value) else repr(value)
        super().__init__(
            f"found {label} inside {kind}: [app:{app} version:{version} ns:{namespace}], "
            f"for stats key: [{key}]"
        )


class GraphTimeoutError(MeshScopeError):
    """The request deadline elapsed before the response was complete."""

    status_code = 504


class InvalidWindowError(MeshScopeError):
    """The requested range window is not a PromQL duration."""

    status_code = 400
