"""
Projection of the filtered relation into an undirected co-occurrence graph.

This module provides functions to:
1. Estimate the exact projected edge count before generating anything
2. Generate every pair of entities that share a group
3. Assemble and simplify the resulting graph
"""

import logging
import math
from itertools import combinations
from typing import Iterator, List, Optional, Sequence, Tuple

import networkx as nx
import polars as pl
from tqdm import tqdm

from cograph.graphs.errors import CapacityExceededError, ConsistencyError


logger = logging.getLogger(__name__)

DEFAULT_MAX_EDGES = 1_000_000
EDGE_SCHEMA = {"group_key": pl.Utf8, "node_a": pl.Utf8, "node_b": pl.Utf8}


def count_projected_edges(frequencies: pl.DataFrame) -> int:
    """
    Exact number of edges the projection will generate.

    Args:
        frequencies: Retained frequency table with a ``count`` column

    Returns:
        int: Sum of C(count, 2) over all groups
    """
    return sum(math.comb(int(count), 2) for count in frequencies["count"])


def check_capacity(total_edges: int, max_edges: int = DEFAULT_MAX_EDGES) -> None:
    """Refuse the run when ``total_edges`` exceeds ``max_edges``."""
    if total_edges > max_edges:
        raise CapacityExceededError(total_edges, max_edges)
    logger.info(f"Projection will generate {total_edges:,} edges (ceiling {max_edges:,})")


def iter_group_pairs(members: Sequence[str]) -> Iterator[Tuple[str, str]]:
    """Yield each unordered pair of ``members`` once; fewer than two members yield nothing."""
    return combinations(members, 2)


def generate_projected_edges(
    relation: pl.DataFrame,
    expected_total: Optional[int] = None,
    show_progress: bool = False,
) -> pl.DataFrame:
    """
    Generate the projected edge list, one row per pair of entities per group.

    Members are sorted within each group, so ``node_a <= node_b`` on every row.

    Args:
        relation: Filtered relation with ``left_id`` and ``right_id``
        expected_total: Edge count precomputed by ``count_projected_edges``
        show_progress: Display a progress bar over groups

    Returns:
        pl.DataFrame: Columns ``group_key``, ``node_a``, ``node_b``
    """
    groups = (
        relation
        .group_by("right_id")
        .agg(pl.col("left_id").sort())
        .sort("right_id")
    )

    rows = []
    for group_key, members in tqdm(
        groups.iter_rows(), total=groups.height, disable=not show_progress, desc="Groups"
    ):
        rows.extend((group_key, a, b) for a, b in iter_group_pairs(members))

    if rows:
        edges = pl.DataFrame(rows, schema=EDGE_SCHEMA, orient="row")
    else:
        edges = pl.DataFrame(schema=EDGE_SCHEMA)

    if expected_total is not None and edges.height != expected_total:
        raise ConsistencyError(
            f"Generated {edges.height:,} edges but {expected_total:,} were expected"
        )
    logger.info(f"Generated {edges.height:,} projected edges from {groups.height:,} groups")
    return edges


def simplify_graph(graph: nx.Graph, weighted: bool = False) -> nx.Graph:
    """
    Collapse parallel edges and drop self-loops.

    In weighted mode each surviving edge carries ``weight``, the sum of the
    weights of the edges it replaces (1 for an unweighted edge). Only nodes
    incident to a surviving edge are kept.

    Args:
        graph: Graph or MultiGraph
        weighted: Record edge multiplicity as ``weight``

    Returns:
        nx.Graph: New frozen simple graph
    """
    simple = nx.Graph()
    self_loops = 0
    for u, v, data in graph.edges(data=True):
        if u == v:
            self_loops += 1
            continue
        if not weighted:
            simple.add_edge(u, v)
        elif simple.has_edge(u, v):
            simple[u][v]["weight"] += data.get("weight", 1)
        else:
            simple.add_edge(u, v, weight=data.get("weight", 1))

    if self_loops:
        logger.warning(f"Removed {self_loops:,} self-loops")
    return nx.freeze(simple)


def assemble_graph(edges: pl.DataFrame, weighted: bool = False) -> nx.Graph:
    """
    Build the simplified co-occurrence graph from the projected edge list.

    Args:
        edges: Projected edges; ``group_key`` is ignored
        weighted: Record edge multiplicity as ``weight``

    Returns:
        nx.Graph: Frozen simple graph
    """
    logger.info("Assembling co-occurrence graph")
    multigraph = nx.MultiGraph()
    multigraph.add_edges_from(edges.select(["node_a", "node_b"]).iter_rows())

    G = simplify_graph(multigraph, weighted=weighted)
    logger.info(
        f"Co-occurrence graph: |V|={G.number_of_nodes():,}, |E|={G.number_of_edges():,} "
        f"({multigraph.number_of_edges() - G.number_of_edges():,} edges collapsed)"
    )
    return G


def check_minimum_degree(graph: nx.Graph) -> int:
    """
    Check that no node of the graph is isolated.

    Returns:
        int: Minimum degree, 0 for an empty graph
    """
    if graph.number_of_nodes() == 0:
        return 0
    min_degree = min(d for _, d in graph.degree())
    if min_degree < 1:
        raise ConsistencyError(f"Graph contains isolated nodes (minimum degree {min_degree})")
    return min_degree


def edge_pairs(graph: nx.Graph) -> List[Tuple[str, str]]:
    """Edges of ``graph`` as sorted ``(a, b)`` tuples, in sorted order."""
    return sorted(tuple(sorted(edge)) for edge in graph.edges())
