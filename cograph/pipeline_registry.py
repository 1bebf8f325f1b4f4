"""Project pipelines."""

from typing import Dict

from kedro.pipeline import Pipeline

from cograph.pipeline.graphs import create_pipeline as create_graphs_pipeline


def register_pipelines() -> Dict[str, Pipeline]:
    """Register the project's pipelines.

    Returns:
        A mapping from pipeline names to ``Pipeline`` objects.
    """
    graphs_pipeline = create_graphs_pipeline()

    return {
        "__default__": graphs_pipeline,
        "graphs": graphs_pipeline,
    }
