"""
Pipeline node function definitions for the co-occurrence graph.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Tuple

import networkx as nx
import polars as pl
from kedro.pipeline import Pipeline, node

from cograph.graphs.export import (
    attach_metadata,
    export_edges_for_visualization,
    save_graph,
    write_edge_list,
    write_node_attributes,
    write_statistics_table,
)
from cograph.graphs.metrics import (
    CommunityResult,
    build_statistics_table,
    compute_graph_statistics,
    detect_communities,
    join_node_attributes,
    node_degrees,
)
from cograph.graphs.projection import (
    DEFAULT_MAX_EDGES,
    assemble_graph,
    check_capacity,
    check_minimum_degree,
    count_projected_edges,
    generate_projected_edges,
)
from cograph.graphs.relation import (
    compute_frequencies,
    count_duplicates,
    deduplicate_relation,
    filter_relation,
    load_relation,
    orient_relation,
)


logger = logging.getLogger(__name__)


def load_relation_node(params: Dict[str, Any]) -> pl.DataFrame:
    """
    Node function for loading and orienting the bipartite relation.

    Args:
        params: Pipeline parameters

    Returns:
        pl.DataFrame: Relation oriented so the projected side is ``left_id``
    """
    source = params.get("input_path")
    if source is None:
        raise ValueError("Parameter 'input_path' is required")

    relation = load_relation(
        source,
        left_col=params.get("left_col", "left_id"),
        right_col=params.get("right_col", "right_id"),
        expected_rows=params.get("expected_rows"),
    )
    return orient_relation(relation, params.get("project_onto", "left"))


def prepare_relation_node(
    relation: pl.DataFrame, params: Dict[str, Any]
) -> Tuple[pl.DataFrame, pl.DataFrame, Dict[str, int]]:
    """
    Node function for deduplicating and frequency-filtering the relation.

    Args:
        relation: Oriented relation
        params: Pipeline parameters

    Returns:
        Tuple: Filtered relation, retained frequencies, relation statistics
    """
    duplicates = count_duplicates(relation)
    deduplicated = deduplicate_relation(
        relation,
        keep_duplicates=params.get("keep_duplicates", False),
        n_duplicates=duplicates,
    )
    frequencies = compute_frequencies(deduplicated)
    filtered, retained = filter_relation(
        deduplicated,
        frequencies,
        min_count=params.get("min_group_size", 2),
        max_count=params.get("max_group_size"),
    )

    stats = {
        "relation_rows": relation.height,
        "duplicate_rows": duplicates,
        "deduplicated_rows": relation.height - duplicates,
        "retained_groups": retained.height,
    }
    return filtered, retained, stats


def project_edges_node(
    relation: pl.DataFrame, frequencies: pl.DataFrame, params: Dict[str, Any]
) -> Tuple[pl.DataFrame, Dict[str, int]]:
    """
    Node function for generating the projected edge list behind the capacity check.

    Args:
        relation: Filtered relation
        frequencies: Retained frequencies of the same relation
        params: Pipeline parameters

    Returns:
        Tuple: Projected edges and projection statistics
    """
    total_edges = count_projected_edges(frequencies)
    check_capacity(total_edges, params.get("max_edges", DEFAULT_MAX_EDGES))

    edges = generate_projected_edges(
        relation,
        expected_total=total_edges,
        show_progress=params.get("show_progress", False),
    )
    return edges, {"projected_edges": edges.height}


def build_graph_node(edges: pl.DataFrame, params: Dict[str, Any]) -> nx.Graph:
    """
    Node function for assembling the simplified graph.

    Args:
        edges: Projected edges
        params: Pipeline parameters

    Returns:
        nx.Graph: Frozen simple graph
    """
    graph = assemble_graph(edges, weighted=params.get("weighted", False))
    check_minimum_degree(graph)
    return graph


def detect_communities_node(
    graph: nx.Graph, params: Dict[str, Any]
) -> Tuple[CommunityResult, Dict[str, float]]:
    """
    Node function for running both community detection algorithms.

    Args:
        graph: Simplified graph
        params: Pipeline parameters

    Returns:
        Tuple: Community labels and the modularity statistic
    """
    communities = detect_communities(
        graph,
        seed=params.get("seed"),
        walktrap_steps=params.get("walktrap_steps", 4),
    )
    return communities, {"modularity": communities.modularity}


def join_node_attributes_node(
    graph: nx.Graph, communities: CommunityResult, params: Dict[str, Any]
) -> pl.DataFrame:
    """
    Node function for building the per-node attribute table.

    Args:
        graph: Simplified graph
        communities: Output of the community detection node
        params: Pipeline parameters

    Returns:
        pl.DataFrame: One row per graph node
    """
    attributes = join_node_attributes(
        sorted(graph.nodes()),
        node_degrees(graph),
        communities.eigen,
        communities.walktrap,
    )

    metadata_path = params.get("metadata_path")
    if metadata_path:
        attributes = attach_metadata(
            attributes, metadata_path, key=params.get("metadata_key", "node_id")
        )
    return attributes


def summarise_statistics_node(
    relation_stats: Dict[str, int],
    projection_stats: Dict[str, int],
    graph_stats: Dict[str, float],
    community_stats: Dict[str, float],
) -> pl.DataFrame:
    """Node function for merging every stage's statistics into one table."""
    table = build_statistics_table(relation_stats, projection_stats, graph_stats, community_stats)
    for statistic, value in table.iter_rows():
        logger.info(f"{statistic}: {value}")
    return table


def export_artifacts_node(
    edges: pl.DataFrame,
    graph: nx.Graph,
    statistics: pl.DataFrame,
    attributes: pl.DataFrame,
    params: Dict[str, Any],
) -> Dict[str, Path]:
    """
    Node function for writing every artifact of the run.

    Args:
        edges: Projected edges before simplification
        graph: Simplified graph
        statistics: Whole-graph statistics table
        attributes: Per-node attribute table
        params: Pipeline parameters

    Returns:
        Dict[str, Path]: Dictionary of paths to the written files
    """
    output_dir = Path(params.get("output_dir", "data/graph"))
    output_dir.mkdir(parents=True, exist_ok=True)

    return {
        "edges": write_edge_list(edges, output_dir / "projected_edges.parquet"),
        "graph": save_graph(graph, output_dir / "cooccurrence_graph.pkl"),
        "visualization": export_edges_for_visualization(graph, output_dir / "cooccurrence_edges.csv"),
        "statistics": write_statistics_table(statistics, output_dir / "graph_statistics.csv"),
        "attributes": write_node_attributes(attributes, output_dir / "node_attributes.parquet"),
    }


def create_pipeline(**kwargs) -> Pipeline:
    """Create the co-occurrence graph pipeline."""
    return Pipeline(
        [
            node(
                load_relation_node,
                inputs="params:graphs",
                outputs="relation",
                name="load_relation",
            ),
            node(
                prepare_relation_node,
                inputs=["relation", "params:graphs"],
                outputs=["filtered_relation", "group_frequencies", "relation_statistics"],
                name="prepare_relation",
            ),
            node(
                project_edges_node,
                inputs=["filtered_relation", "group_frequencies", "params:graphs"],
                outputs=["projected_edges", "projection_statistics"],
                name="project_edges",
            ),
            node(
                build_graph_node,
                inputs=["projected_edges", "params:graphs"],
                outputs="cooccurrence_graph",
                name="build_graph",
            ),
            node(
                compute_graph_statistics,
                inputs="cooccurrence_graph",
                outputs="graph_statistics",
                name="compute_graph_statistics",
            ),
            node(
                detect_communities_node,
                inputs=["cooccurrence_graph", "params:graphs"],
                outputs=["communities", "community_statistics"],
                name="detect_communities",
            ),
            node(
                join_node_attributes_node,
                inputs=["cooccurrence_graph", "communities", "params:graphs"],
                outputs="node_attributes",
                name="join_node_attributes",
            ),
            node(
                summarise_statistics_node,
                inputs=[
                    "relation_statistics",
                    "projection_statistics",
                    "graph_statistics",
                    "community_statistics",
                ],
                outputs="statistics_table",
                name="summarise_statistics",
            ),
            node(
                export_artifacts_node,
                inputs=[
                    "projected_edges",
                    "cooccurrence_graph",
                    "statistics_table",
                    "node_attributes",
                    "params:graphs",
                ],
                outputs="graph_artifacts",
                name="export_artifacts",
            ),
        ]
    )
