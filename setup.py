"""Setup script for the co-occurrence graph project."""

from setuptools import find_packages, setup

setup(
    name="cograph",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "polars>=1.0.0",
        "duckdb>=0.9.0",
        "pyarrow>=13.0.0",
        "pandas>=2.0.0",
        "kedro>=0.19.0",
        "networkx>=3.0",
        "igraph>=0.11.0",
        "tqdm>=4.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "black>=23.0.0",
            "ruff>=0.0.265",
        ],
    },
    python_requires=">=3.11",
    description="Bipartite relation projection, graph statistics and community detection",
)
