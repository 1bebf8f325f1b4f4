"""
Whole-graph statistics, community detection and per-node attributes.

Statistics are plain ``{name: value}`` dicts produced independently by each
pipeline stage and merged into one fixed, ordered table at the end.
"""

import logging
import math
import random
from typing import Dict, Mapping, NamedTuple, Optional, Sequence

import igraph as ig
import networkx as nx
import polars as pl

from cograph.graphs.errors import ConsistencyError


logger = logging.getLogger(__name__)

STATISTIC_NAMES = (
    "relation_rows",
    "duplicate_rows",
    "deduplicated_rows",
    "retained_groups",
    "projected_edges",
    "nodes",
    "edges",
    "degree_median",
    "degree_mean",
    "degree_max",
    "degree_one_nodes",
    "density",
    "average_path_length",
    "diameter",
    "components",
    "modularity",
)


class CommunityResult(NamedTuple):
    """Community labels from both algorithms, keyed by node."""

    eigen: Dict[str, int]
    walktrap: Dict[str, int]
    modularity: float


def to_igraph(graph: nx.Graph, nodes: Optional[Sequence[str]] = None) -> ig.Graph:
    """
    Convert a NetworkX graph into igraph, keeping node identifiers in ``name``.

    Args:
        graph: Undirected NetworkX graph
        nodes: Vertex order, defaults to sorted node identifiers

    Returns:
        ig.Graph: Undirected igraph graph, with ``weight`` when ``graph`` has weights
    """
    nodes = list(nodes) if nodes is not None else sorted(graph.nodes())
    node_index = {node: idx for idx, node in enumerate(nodes)}
    edges = list(graph.edges(data="weight"))

    g = ig.Graph(n=len(nodes), edges=[(node_index[u], node_index[v]) for u, v, _ in edges])
    g.vs["name"] = nodes
    if edges and all(w is not None for _, _, w in edges):
        g.es["weight"] = [w for _, _, w in edges]
    return g


def compute_graph_statistics(graph: nx.Graph) -> Dict[str, float]:
    """
    Compute whole-graph statistics for a simple undirected graph.

    Path statistics only consider reachable pairs, so disconnected graphs are
    fine. An edgeless graph has no reachable pair: its average path length is
    NaN and its diameter 0.

    Args:
        graph: Simplified graph

    Returns:
        Dict[str, float]: Statistics in ``STATISTIC_NAMES`` order
    """
    n_nodes = graph.number_of_nodes()
    n_edges = graph.number_of_edges()
    logger.info(f"Computing statistics for graph with {n_nodes:,} nodes")

    degrees = pl.Series("degree", [d for _, d in graph.degree()], dtype=pl.Int64)
    if n_nodes:
        degree_median = float(degrees.median())
        degree_mean = round(float(degrees.mean()), 2)
        degree_max = int(degrees.max())
        degree_one = int((degrees == 1).sum())
    else:
        degree_median = degree_mean = 0.0
        degree_max = degree_one = 0

    if n_edges:
        g = to_igraph(graph)
        average_path_length = round(g.average_path_length(directed=False, unconn=True), 2)
        diameter = int(g.diameter(directed=False, unconn=True))
    else:
        average_path_length = math.nan
        diameter = 0

    stats = {
        "nodes": n_nodes,
        "edges": n_edges,
        "degree_median": degree_median,
        "degree_mean": degree_mean,
        "degree_max": degree_max,
        "degree_one_nodes": degree_one,
        "density": round(nx.density(graph), 4),
        "average_path_length": average_path_length,
        "diameter": diameter,
        "components": nx.number_connected_components(graph),
    }
    logger.info(f"Graph has {stats['components']:,} connected components, diameter {diameter}")
    return stats


def detect_communities(
    graph: nx.Graph,
    seed: Optional[int] = None,
    walktrap_steps: int = 4,
) -> CommunityResult:
    """
    Partition the graph with leading-eigenvector and walktrap clustering.

    Leading eigenvector runs on the non-isolated part of the graph. Walktrap
    runs on each connected component separately, each cut at its own
    modularity optimum. Every isolated node becomes its own singleton
    community. Labels are arbitrary integers, only the partition they induce
    is meaningful.

    Args:
        graph: Simplified graph
        seed: Seed for igraph's random number generator
        walktrap_steps: Random walk length for walktrap

    Returns:
        CommunityResult: Labels per node for both algorithms and the
        leading-eigenvector modularity (NaN when the graph has no edges)
    """
    if seed is None:
        return _partition(graph, walktrap_steps)

    # igraph keeps one process-wide generator; its default is the random module
    ig.set_random_number_generator(random.Random(seed))
    try:
        return _partition(graph, walktrap_steps)
    finally:
        ig.set_random_number_generator(random)


def _partition(graph: nx.Graph, walktrap_steps: int) -> CommunityResult:
    nodes = sorted(graph.nodes())
    connected = [node for node in nodes if graph.degree(node) > 0]
    isolated = [node for node in nodes if graph.degree(node) == 0]

    eigen: Dict[str, int] = {}
    modularity = math.nan

    if connected:
        g = to_igraph(graph.subgraph(connected), connected)
        weights = "weight" if "weight" in g.es.attributes() else None
        clusters = g.community_leading_eigenvector(weights=weights)
        eigen = dict(zip(connected, clusters.membership))
        modularity = round(clusters.modularity, 4)
        logger.info(f"Leading eigenvector: {len(clusters):,} communities, modularity {modularity}")

    if isolated:
        logger.info(f"Assigning {len(isolated):,} isolated nodes to singleton communities")
        next_label = max(eigen.values(), default=-1) + 1
        for offset, node in enumerate(isolated):
            eigen[node] = next_label + offset

    walktrap = _walktrap_by_component(graph, walktrap_steps)
    logger.info(f"Walktrap: {len(set(walktrap.values())):,} communities")

    return CommunityResult(eigen=eigen, walktrap=walktrap, modularity=modularity)


def _walktrap_by_component(graph: nx.Graph, steps: int) -> Dict[str, int]:
    labels: Dict[str, int] = {}
    next_label = 0
    components = sorted((sorted(c) for c in nx.connected_components(graph)), key=lambda c: c[0])
    for component in components:
        # One or two nodes cannot be split without losing modularity
        if len(component) <= 2:
            membership = [0] * len(component)
        else:
            g = to_igraph(graph.subgraph(component), component)
            weights = "weight" if "weight" in g.es.attributes() else None
            membership = g.community_walktrap(weights=weights, steps=steps).as_clustering().membership
        for node, label in zip(component, membership):
            labels[node] = next_label + label
        next_label += max(membership) + 1
    return labels


def join_node_attributes(
    nodes: Sequence[str],
    degrees: Mapping[str, int],
    eigen: Mapping[str, int],
    walktrap: Mapping[str, int],
) -> pl.DataFrame:
    """
    Merge per-node fragments into one attribute table keyed by node.

    Every fragment must cover exactly the canonical node set; anything else
    means an upstream stage lost or invented nodes, and the join fails rather
    than dropping rows.

    Args:
        nodes: Canonical node identifiers
        degrees: Degree per node
        eigen: Leading-eigenvector community per node
        walktrap: Walktrap community per node

    Returns:
        pl.DataFrame: ``node_id``, ``degree``, ``community_eigen``,
        ``community_walktrap``, sorted by ``node_id``
    """
    canonical = set(nodes)
    if len(canonical) != len(nodes):
        raise ConsistencyError(f"Node list contains {len(nodes) - len(canonical):,} repeated ids")

    fragments = {"degree": degrees, "community_eigen": eigen, "community_walktrap": walktrap}
    merged = pl.DataFrame({"node_id": list(nodes)}, schema={"node_id": pl.Utf8})
    for column, values in fragments.items():
        keys = set(values)
        if keys != canonical:
            raise ConsistencyError(
                f"{column} covers {len(keys):,} nodes but the graph has {len(canonical):,} "
                f"({len(canonical - keys):,} missing, {len(keys - canonical):,} unknown)"
            )
        frame = pl.DataFrame(
            {"node_id": list(values.keys()), column: list(values.values())},
            schema={"node_id": pl.Utf8, column: pl.Int64},
        )
        merged = merged.join(frame, on="node_id", how="inner", validate="1:1")

    if merged.height != len(nodes):
        raise ConsistencyError(
            f"Attribute join produced {merged.height:,} rows for {len(nodes):,} nodes"
        )
    return merged.sort("node_id")


def build_statistics_table(*fragments: Mapping[str, float]) -> pl.DataFrame:
    """
    Merge per-stage statistics into the fixed, ordered statistics table.

    Args:
        fragments: ``{name: value}`` dicts, each name provided exactly once

    Returns:
        pl.DataFrame: Columns ``statistic`` and ``value`` in ``STATISTIC_NAMES`` order
    """
    values: Dict[str, float] = {}
    for fragment in fragments:
        repeated = values.keys() & fragment.keys()
        if repeated:
            raise ValueError(f"Statistics provided twice: {', '.join(sorted(repeated))}")
        values.update(fragment)

    unknown = values.keys() - set(STATISTIC_NAMES)
    missing = [name for name in STATISTIC_NAMES if name not in values]
    if unknown or missing:
        raise ValueError(
            f"Statistics mismatch: missing {missing}, unknown {sorted(unknown)}"
        )

    return pl.DataFrame(
        {
            "statistic": list(STATISTIC_NAMES),
            "value": [float(values[name]) for name in STATISTIC_NAMES],
        }
    )


def node_degrees(graph: nx.Graph) -> Dict[str, int]:
    """Degree of every node."""
    return dict(graph.degree())
