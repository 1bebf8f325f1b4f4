"""
Persistence of pipeline artifacts.
"""

import logging
import os
import pickle
from pathlib import Path
from typing import Union

import networkx as nx
import polars as pl

from cograph.graphs.errors import ConsistencyError
from cograph.graphs.projection import edge_pairs


logger = logging.getLogger(__name__)

VISUALIZATION_HEADER = ["Source", "Target"]


def _prepare(path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def write_edge_list(edges: pl.DataFrame, output_file: Path) -> Path:
    """Save the projected edge list, before simplification, as Parquet."""
    output_file = _prepare(output_file)
    edges.write_parquet(output_file, compression="zstd")
    logger.info(f"Saved {edges.height:,} projected edges to {output_file}")
    return output_file


def save_graph(graph: nx.Graph, output_file: Path) -> Path:
    """Pickle the simplified graph."""
    output_file = _prepare(output_file)
    with open(output_file, "wb") as f:
        pickle.dump(graph, f, protocol=5)
    logger.info(f"Saved graph to {output_file} ({os.path.getsize(output_file)/1024/1024:.2f} MB)")
    return output_file


def load_graph(graph_file: Path) -> nx.Graph:
    """Load a graph written by ``save_graph``."""
    with open(graph_file, "rb") as f:
        return pickle.load(f)


def export_edges_for_visualization(graph: nx.Graph, output_file: Path) -> Path:
    """
    Export the surviving edges as a two-column CSV for tools such as Gephi.

    Args:
        graph: Simplified graph
        output_file: Path of the CSV to write

    Returns:
        Path: Path to the saved CSV file
    """
    output_file = _prepare(output_file)
    pairs = edge_pairs(graph)
    source, target = VISUALIZATION_HEADER
    pl.DataFrame(
        {source: [a for a, _ in pairs], target: [b for _, b in pairs]},
        schema={source: pl.Utf8, target: pl.Utf8},
    ).write_csv(output_file)
    logger.info(f"Exported {len(pairs):,} edges for visualization to {output_file}")
    return output_file


def write_statistics_table(table: pl.DataFrame, output_file: Path) -> Path:
    """Save the whole-graph statistics table as CSV."""
    output_file = _prepare(output_file)
    table.write_csv(output_file)
    logger.info(f"Saved graph statistics to {output_file}")
    return output_file


def write_node_attributes(attributes: pl.DataFrame, output_file: Path) -> Path:
    """Save the per-node attribute table as Parquet."""
    output_file = _prepare(output_file)
    attributes.write_parquet(output_file, compression="zstd")
    logger.info(f"Saved attributes for {attributes.height:,} nodes to {output_file}")
    return output_file


def attach_metadata(
    attributes: pl.DataFrame,
    metadata: Union[str, Path, pl.DataFrame],
    key: str = "node_id",
) -> pl.DataFrame:
    """
    Left-join descriptive columns from a reference table onto the node attributes.

    Args:
        attributes: Output of ``join_node_attributes``
        metadata: Reference table, or a Parquet/CSV path to one
        key: Identifier column of the reference table

    Returns:
        pl.DataFrame: Node attributes with the reference columns appended
    """
    if not isinstance(metadata, pl.DataFrame):
        path = Path(metadata)
        if not path.exists():
            raise FileNotFoundError(f"{path} does not exist")
        if path.suffix.lower() == ".parquet":
            metadata = pl.read_parquet(path)
        else:
            metadata = pl.read_csv(path, infer_schema_length=10000)

    if key not in metadata.columns:
        raise ValueError(f"Metadata table has no column {key!r}")
    if key != "node_id" and "node_id" in metadata.columns:
        raise ValueError(
            f"Metadata table has both {key!r} and 'node_id' columns, cannot key it on {key!r}"
        )

    colliding = [c for c in metadata.columns if c != key and c in attributes.columns]
    if colliding:
        logger.warning(
            f"Ignoring metadata columns that clash with node attributes: {', '.join(colliding)}"
        )
        metadata = metadata.drop(colliding)

    reference = (
        metadata
        .with_columns(pl.col(key).cast(pl.Utf8))
        .unique(subset=[key], keep="first", maintain_order=True)
        .rename({key: "node_id"})
    )
    enriched = attributes.join(reference, on="node_id", how="left")
    if enriched.height != attributes.height:
        raise ConsistencyError(
            f"Metadata join changed the row count from {attributes.height:,} to {enriched.height:,}"
        )

    matched = enriched.join(reference.select("node_id"), on="node_id", how="semi").height
    logger.info(f"Matched metadata for {matched:,} of {attributes.height:,} nodes")
    return enriched
