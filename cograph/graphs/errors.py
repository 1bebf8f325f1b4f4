"""
Exceptions raised by the co-occurrence graph pipeline.
"""


class InputIntegrityError(ValueError):
    """Declared and materialized row counts of the input relation differ."""

    def __init__(self, declared: int, actual: int):
        self.declared = declared
        self.actual = actual
        super().__init__(
            f"Input row count mismatch: declared {declared:,} rows, loaded {actual:,}"
        )


class CapacityExceededError(ValueError):
    """The projection would produce more edges than the configured ceiling."""

    def __init__(self, total_edges: int, max_edges: int):
        self.total_edges = total_edges
        self.max_edges = max_edges
        super().__init__(
            f"Projection would generate {total_edges:,} edges, "
            f"exceeding the ceiling of {max_edges:,}"
        )


class ConsistencyError(AssertionError):
    """An internal pipeline invariant was violated."""
