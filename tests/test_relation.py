"""
Unit tests for loading, deduplicating and filtering the relation.
"""
import logging

import pandas as pd
import polars as pl
import pytest

from cograph.graphs.errors import InputIntegrityError
from cograph.graphs.relation import (
    compute_frequencies,
    count_duplicates,
    count_source_rows,
    deduplicate_relation,
    filter_relation,
    load_relation,
    orient_relation,
    validate_row_count,
)


def _rows(df):
    return sorted(df.select(["left_id", "right_id"]).iter_rows())


def test_load_relation_from_parquet(relation_files):
    """Test loading a Parquet file with domain column names."""
    relation = load_relation(relation_files["parquet"], left_col="dataset_id", right_col="user_id")

    assert relation.columns == ["left_id", "right_id"]
    assert relation.height == 5
    assert relation.schema["left_id"] == pl.Utf8


def test_load_relation_from_csv_keeps_identifiers_as_strings(project_dirs):
    """Test that CSV identifiers are read as strings."""
    csv_path = project_dirs["relation"] / "ids.csv"
    csv_path.write_text("dataset_id,user_id\n001,10\n002,10\n")

    relation = load_relation(csv_path, left_col="dataset_id", right_col="user_id")

    assert relation["left_id"].to_list() == ["001", "002"]
    assert relation["right_id"].to_list() == ["10", "10"]


def test_load_relation_checks_expected_rows(relation_files):
    """Test that a declared row count different from the file aborts the load."""
    with pytest.raises(InputIntegrityError) as excinfo:
        load_relation(
            relation_files["parquet"],
            left_col="dataset_id",
            right_col="user_id",
            expected_rows=6,
        )

    assert excinfo.value.declared == 6
    assert excinfo.value.actual == 5


def test_load_relation_from_dataframes(chain_relation):
    """Test in-memory polars and pandas input."""
    from_polars = load_relation(chain_relation, expected_rows=5)
    from_pandas = load_relation(chain_relation.to_pandas())

    assert _rows(from_polars) == _rows(chain_relation)
    assert _rows(from_pandas) == _rows(chain_relation)

    with pytest.raises(InputIntegrityError):
        load_relation(chain_relation, expected_rows=4)


def test_load_relation_errors(project_dirs, chain_relation, relation_files):
    """Test missing files, unsupported formats and missing columns."""
    with pytest.raises(FileNotFoundError):
        load_relation(project_dirs["relation"] / "missing.parquet")

    json_path = project_dirs["relation"] / "relation.json"
    json_path.write_text("[]")
    with pytest.raises(ValueError):
        load_relation(json_path)

    with pytest.raises(ValueError):
        load_relation(chain_relation, left_col="dataset_id")

    with pytest.raises(ValueError, match="contributor_id"):
        load_relation(relation_files["csv"], left_col="dataset_id", right_col="contributor_id")


def test_load_relation_drops_null_identifiers(caplog):
    """Test that rows with a null id are dropped with a warning."""
    df = pd.DataFrame({"left_id": ["d1", None, "d2"], "right_id": ["u1", "u1", None]})

    with caplog.at_level(logging.WARNING):
        relation = load_relation(df, expected_rows=3)

    assert _rows(relation) == [("d1", "u1")]
    assert "null identifier" in caplog.text


def test_count_source_rows(relation_files):
    """Test DuckDB row counts for both formats."""
    assert count_source_rows(relation_files["parquet"]) == 5
    assert count_source_rows(relation_files["csv"]) == 5


def test_validate_row_count():
    """Test the row count equality check."""
    validate_row_count(3, 3)
    with pytest.raises(InputIntegrityError, match="declared 3 rows, loaded 2"):
        validate_row_count(3, 2)


def test_orient_relation(chain_relation):
    """Test swapping the projected side."""
    assert orient_relation(chain_relation, "left") is chain_relation

    swapped = orient_relation(chain_relation, "right")
    assert swapped["left_id"].to_list() == chain_relation["right_id"].to_list()
    assert swapped["right_id"].to_list() == chain_relation["left_id"].to_list()

    with pytest.raises(ValueError):
        orient_relation(chain_relation, "both")


def test_deduplicate_relation_drops_and_warns(chain_relation, caplog):
    """Test that duplicates are dropped by default and reported."""
    doubled = pl.concat([chain_relation, chain_relation.head(2)])

    with caplog.at_level(logging.WARNING):
        deduplicated = deduplicate_relation(doubled)

    assert count_duplicates(doubled) == 2
    assert _rows(deduplicated) == _rows(chain_relation)
    assert "2 duplicate relation rows" in caplog.text


def test_deduplicate_relation_keep_duplicates(chain_relation):
    """Test the keep-duplicates mode."""
    doubled = pl.concat([chain_relation, chain_relation.head(1)])

    kept = deduplicate_relation(doubled, keep_duplicates=True)

    assert kept.height == 6


def test_deduplicate_relation_is_idempotent(chain_relation):
    """Test that deduplicating twice gives the same set."""
    doubled = pl.concat([chain_relation, chain_relation])

    once = deduplicate_relation(doubled)
    twice = deduplicate_relation(once)

    assert _rows(once) == _rows(twice)
    assert count_duplicates(once) == 0


def test_compute_frequencies(chain_relation):
    """Test row counts per group."""
    frequencies = compute_frequencies(chain_relation)

    counts = dict(frequencies.iter_rows())
    assert counts == {"u1": 1, "u2": 2, "u3": 2}
    # Most frequent first, ties by key
    assert frequencies["right_id"].to_list() == ["u2", "u3", "u1"]


def test_filter_relation_removes_only_singletons():
    """Test groups of sizes 1, 1, 2 and 3: only the groups of 2 and 3 survive."""
    relation = pl.DataFrame({
        "left_id": ["a", "b", "c", "d", "e", "f", "g"],
        "right_id": ["g1", "g2", "g3", "g3", "g4", "g4", "g4"],
    })
    frequencies = compute_frequencies(relation)

    filtered, retained = filter_relation(relation, frequencies)

    assert sorted(retained["right_id"].to_list()) == ["g3", "g4"]
    assert sorted(filtered["left_id"].to_list()) == ["c", "d", "e", "f", "g"]


def test_filter_relation_max_count():
    """Test the optional upper bound on group size."""
    relation = pl.DataFrame({
        "left_id": ["a", "b", "c", "d", "e"],
        "right_id": ["g1", "g1", "g2", "g2", "g2"],
    })

    filtered, retained = filter_relation(relation, compute_frequencies(relation), max_count=2)

    assert retained["right_id"].to_list() == ["g1"]
    assert sorted(filtered["left_id"].to_list()) == ["a", "b"]


def test_filter_relation_rejects_min_count_below_two(chain_relation):
    """Test that a group of one can never be retained."""
    with pytest.raises(ValueError):
        filter_relation(chain_relation, compute_frequencies(chain_relation), min_count=1)


def test_load_relation_path_with_apostrophe(project_dirs, chain_relation):
    """Test that the row count works for paths containing a quote."""
    directory = project_dirs["relation"] / "o'brien"
    directory.mkdir()
    path = directory / "relation.parquet"
    chain_relation.write_parquet(path)

    assert count_source_rows(path) == 5
    assert load_relation(path).height == 5


def test_deduplicate_relation_uses_known_count(chain_relation, caplog):
    """Test that a supplied duplicate count is reported as is."""
    doubled = pl.concat([chain_relation, chain_relation.head(1)])

    with caplog.at_level(logging.WARNING):
        kept = deduplicate_relation(doubled, keep_duplicates=True, n_duplicates=1)

    assert kept.height == 6
    assert "1 duplicate relation rows, keeping them" in caplog.text
