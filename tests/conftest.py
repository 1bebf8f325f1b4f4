"""
Pytest configuration file for the co-occurrence graph project.

This file contains shared fixtures and configuration for the test suite.
"""
import pytest
import networkx as nx
import polars as pl


@pytest.fixture
def project_dirs(tmp_path):
    """
    Create the directory structure a pipeline run reads from and writes to.

    Returns:
        dict: A dictionary of paths to the created directories.
    """
    dirs = {
        "base": tmp_path,
        "relation": tmp_path / "data" / "relation",
        "graph": tmp_path / "data" / "graph",
        "reference": tmp_path / "data" / "reference",
    }

    for d in dirs.values():
        d.mkdir(parents=True, exist_ok=True)

    return dirs


@pytest.fixture
def chain_relation():
    """
    Dataset -> contributor relation where u2 and u3 each link two datasets.

    Projecting onto datasets gives the path d1 - d2 - d3; u1 links nothing.
    """
    return pl.DataFrame({
        "left_id": ["d1", "d1", "d2", "d2", "d3"],
        "right_id": ["u1", "u2", "u2", "u3", "u3"],
    })


@pytest.fixture
def relation_files(project_dirs, chain_relation):
    """
    Write the chain relation to Parquet and CSV with domain column names.

    Returns:
        dict: Paths keyed by format.
    """
    relation = chain_relation.rename({"left_id": "dataset_id", "right_id": "user_id"})
    parquet_path = project_dirs["relation"] / "dataset_contributors.parquet"
    csv_path = project_dirs["relation"] / "dataset_contributors.csv"
    relation.write_parquet(parquet_path)
    relation.write_csv(csv_path)
    return {"parquet": parquet_path, "csv": csv_path}


@pytest.fixture
def two_triangles():
    """Two disjoint triangles: 6 nodes, 6 edges, 2 components."""
    G = nx.Graph()
    G.add_edges_from([("a", "b"), ("b", "c"), ("a", "c")])
    G.add_edges_from([("x", "y"), ("y", "z"), ("x", "z")])
    return G
