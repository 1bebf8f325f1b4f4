#!/usr/bin/env python
"""
Run the co-occurrence graph pipeline.

This script projects a bipartite relation (e.g. dataset -> contributor) onto
one side, computes whole-graph statistics and community partitions, and writes
the edge list, graph, statistics table and node attributes to the output
directory. Parameters come from conf/base/parameters.yml and can be
overridden on the command line.

Example:
    $ python scripts/run_graphs_pipeline.py
    $ python scripts/run_graphs_pipeline.py --input data/relation/links.csv --left-col dataset_id --right-col user_id
    $ python scripts/run_graphs_pipeline.py --project-onto right --max-edges 5000000 --weighted
"""

import sys
import argparse
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

# Add project root to sys.path
project_root = Path(__file__).parent.parent
sys.path.append(str(project_root))

from kedro.config import OmegaConfigLoader
from kedro.io import DataCatalog, MemoryDataset
from kedro.runner import SequentialRunner

from cograph.pipeline_registry import register_pipelines
from cograph.settings import BASE_ENV, CONF_SOURCE, LOCAL_ENV, PROJECT_ROOT

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def load_parameters(conf_dir: Path = PROJECT_ROOT / CONF_SOURCE) -> Dict[str, Any]:
    """Load the ``graphs`` parameters from the project configuration."""
    config_loader = OmegaConfigLoader(
        conf_source=str(conf_dir),
        base_env=BASE_ENV,
        default_run_env=LOCAL_ENV,
    )
    return dict(config_loader["parameters"].get("graphs", {}))


def run_pipeline(params: Dict[str, Any]) -> Dict[str, Path]:
    """
    Run the graphs pipeline with the given parameters.

    Args:
        params: Values for ``params:graphs``

    Returns:
        Dict[str, Path]: Paths of the written artifacts
    """
    pipeline = register_pipelines()["graphs"]
    catalog = DataCatalog({
        "params:graphs": MemoryDataset(params),
        "graph_artifacts": MemoryDataset(),
    })

    logger.info("Running graphs pipeline")
    SequentialRunner().run(pipeline, catalog)
    artifacts = catalog.load("graph_artifacts")

    for name, path in artifacts.items():
        logger.info(f"{name}: {path}")
    logger.info("Graph pipeline completed successfully")
    return artifacts


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Build a co-occurrence graph from a bipartite relation"
    )

    parser.add_argument("--input", dest="input_path", help="Relation file (Parquet or CSV)")
    parser.add_argument("--left-col", help="Column holding the left entity identifier")
    parser.add_argument("--right-col", help="Column holding the right entity identifier")
    parser.add_argument(
        "--project-onto",
        choices=["left", "right"],
        help="Side of the relation the graph is built on"
    )
    parser.add_argument("--expected-rows", type=int, help="Row count the input must have")
    parser.add_argument("--max-edges", type=int, help="Ceiling on the projected edge count")
    parser.add_argument("--min-group-size", type=int, help="Drop groups smaller than this")
    parser.add_argument("--max-group-size", type=int, help="Drop groups larger than this")
    parser.add_argument(
        "--weighted",
        action="store_true",
        default=None,
        help="Store parallel-edge multiplicity as edge weight"
    )
    parser.add_argument(
        "--keep-duplicates",
        action="store_true",
        default=None,
        help="Keep duplicate relation rows"
    )
    parser.add_argument("--seed", type=int, help="Seed for community detection")
    parser.add_argument("--walktrap-steps", type=int, help="Random walk length for walktrap")
    parser.add_argument("--output-dir", help="Directory for the artifacts")
    parser.add_argument("--metadata", dest="metadata_path", help="Reference table for node metadata")

    return parser.parse_args(argv)


def apply_overrides(params: Dict[str, Any], args: argparse.Namespace) -> Dict[str, Any]:
    """Return ``params`` with every option given on the command line applied."""
    return {**params, **{k: v for k, v in vars(args).items() if v is not None}}


if __name__ == "__main__":
    args = parse_args()
    run_pipeline(apply_overrides(load_parameters(), args))
