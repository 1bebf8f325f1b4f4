"""
Loading, deduplication and frequency filtering of the bipartite relation.

The relation is a two-column table of ``(left_id, right_id)`` associations,
e.g. dataset -> contributor. Projection always happens onto ``left_id``;
``orient_relation`` swaps the columns when the other side is wanted.
"""

import logging
from pathlib import Path
from typing import Optional, Tuple, Union

import duckdb
import pandas as pd
import polars as pl

from cograph.graphs.errors import InputIntegrityError


logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = {".parquet": "read_parquet", ".csv": "read_csv_auto"}


def count_source_rows(path: Path) -> int:
    """
    Count the rows a Parquet or CSV file declares, independently of polars.

    Args:
        path: Path to the source file

    Returns:
        int: Row count reported by DuckDB
    """
    path = Path(path)
    reader = SUPPORTED_FORMATS[path.suffix.lower()]
    con = duckdb.connect()
    try:
        return int(con.execute(f"SELECT COUNT(*) FROM {reader}(?)", [str(path)]).fetchone()[0])
    finally:
        con.close()


def validate_row_count(declared: int, actual: int) -> None:
    """Raise ``InputIntegrityError`` unless both counts are equal."""
    if declared != actual:
        raise InputIntegrityError(declared, actual)
    logger.info(f"Row count check passed ({actual:,} rows)")


def _read_source(path: Path, left_col: str, right_col: str) -> pl.DataFrame:
    if path.suffix.lower() == ".parquet":
        lazy = pl.scan_parquet(path)
    else:
        # All columns as strings so identifiers keep leading zeros
        lazy = pl.scan_csv(path, infer_schema_length=0)
    missing = [c for c in (left_col, right_col) if c not in lazy.collect_schema().names()]
    if missing:
        raise ValueError(f"Relation is missing columns: {', '.join(missing)}")
    return lazy.select([left_col, right_col]).collect()


def load_relation(
    source: Union[str, Path, pd.DataFrame, pl.DataFrame],
    left_col: str = "left_id",
    right_col: str = "right_id",
    expected_rows: Optional[int] = None,
) -> pl.DataFrame:
    """
    Load the bipartite relation and check it against its declared row count.

    Files are counted with DuckDB before polars materializes them; in-memory
    frames are checked against ``expected_rows`` when the caller supplies it.

    Args:
        source: Parquet/CSV path, or a pandas/polars DataFrame
        left_col: Column holding the left entity identifier
        right_col: Column holding the right entity identifier
        expected_rows: Row count the caller expects, if known

    Returns:
        pl.DataFrame: Relation with string columns ``left_id`` and ``right_id``
    """
    if isinstance(source, pd.DataFrame):
        df = pl.from_pandas(source)
        declared = expected_rows
    elif isinstance(source, pl.DataFrame):
        df = source
        declared = expected_rows
    else:
        path = Path(source)
        if not path.exists():
            raise FileNotFoundError(f"{path} does not exist")
        if path.suffix.lower() not in SUPPORTED_FORMATS:
            raise ValueError(f"Unsupported relation format: {path.suffix}")
        logger.info(f"Loading relation from {path}")
        declared = count_source_rows(path)
        if expected_rows is not None:
            validate_row_count(expected_rows, declared)
        df = _read_source(path, left_col, right_col)

    missing = [c for c in (left_col, right_col) if c not in df.columns]
    if missing:
        raise ValueError(f"Relation is missing columns: {', '.join(missing)}")

    relation = df.select([
        pl.col(left_col).cast(pl.Utf8).alias("left_id"),
        pl.col(right_col).cast(pl.Utf8).alias("right_id"),
    ])

    if declared is not None:
        validate_row_count(declared, relation.height)

    non_null = relation.drop_nulls()
    if non_null.height < relation.height:
        logger.warning(
            f"Dropped {relation.height - non_null.height:,} rows with a null identifier"
        )
    logger.info(f"Loaded {non_null.height:,} relation rows")
    return non_null


def orient_relation(relation: pl.DataFrame, project_onto: str = "left") -> pl.DataFrame:
    """
    Orient the relation so that the projected side is ``left_id``.

    Args:
        relation: Relation with ``left_id`` and ``right_id``
        project_onto: ``"left"`` keeps the relation as is, ``"right"`` swaps sides

    Returns:
        pl.DataFrame: Oriented relation
    """
    if project_onto == "left":
        return relation
    if project_onto == "right":
        return relation.select([
            pl.col("right_id").alias("left_id"),
            pl.col("left_id").alias("right_id"),
        ])
    raise ValueError(f"project_onto must be 'left' or 'right', got {project_onto!r}")


def count_duplicates(relation: pl.DataFrame) -> int:
    """Number of rows that repeat an earlier row."""
    return relation.height - relation.unique().height


def deduplicate_relation(
    relation: pl.DataFrame,
    keep_duplicates: bool = False,
    n_duplicates: Optional[int] = None,
) -> pl.DataFrame:
    """
    Drop repeated relation rows.

    Duplicates are always reported as a warning. With ``keep_duplicates`` they
    are left in place so that repeated associations surface later as parallel
    edges (and as edge weight in weighted mode).

    Args:
        relation: Relation rows
        keep_duplicates: Keep repeated rows instead of dropping them
        n_duplicates: Duplicate count when already known

    Returns:
        pl.DataFrame: Relation without duplicates, unless ``keep_duplicates``
    """
    if n_duplicates is None:
        n_duplicates = count_duplicates(relation)
    if n_duplicates:
        action = "keeping" if keep_duplicates else "dropping"
        logger.warning(f"Found {n_duplicates:,} duplicate relation rows, {action} them")
    if keep_duplicates or not n_duplicates:
        return relation
    return relation.unique(maintain_order=True)


def compute_frequencies(relation: pl.DataFrame, key: str = "right_id") -> pl.DataFrame:
    """
    Count rows per distinct ``key``.

    Args:
        relation: Relation rows
        key: Column to count by

    Returns:
        pl.DataFrame: Columns ``key`` and ``count``, most frequent first
    """
    return (
        relation
        .group_by(key)
        .agg(pl.len().cast(pl.Int64).alias("count"))
        .sort(["count", key], descending=[True, False])
    )


def filter_relation(
    relation: pl.DataFrame,
    frequencies: pl.DataFrame,
    min_count: int = 2,
    max_count: Optional[int] = None,
    key: str = "right_id",
) -> Tuple[pl.DataFrame, pl.DataFrame]:
    """
    Keep only rows whose ``key`` can bridge two projected entities.

    A key seen in a single row links nothing and is dropped. ``max_count``
    optionally drops oversized groups as well.

    Args:
        relation: Relation rows
        frequencies: Output of ``compute_frequencies`` for the same relation
        min_count: Smallest group size kept, at least 2
        max_count: Largest group size kept, or None for no upper bound
        key: Grouping column

    Returns:
        Tuple[pl.DataFrame, pl.DataFrame]: Filtered rows and retained frequencies
    """
    if min_count < 2:
        raise ValueError(f"min_count must be at least 2, got {min_count}")

    mask = pl.col("count") >= min_count
    if max_count is not None:
        mask = mask & (pl.col("count") <= max_count)
    retained = frequencies.filter(mask)

    undersized = frequencies.filter(pl.col("count") < min_count).height
    oversized = 0 if max_count is None else frequencies.filter(pl.col("count") > max_count).height
    logger.info(
        f"Retained {retained.height:,} of {frequencies.height:,} groups "
        f"({undersized:,} too small, {oversized:,} too large)"
    )

    filtered = relation.join(retained.select(key), on=key, how="semi")
    return filtered, retained
