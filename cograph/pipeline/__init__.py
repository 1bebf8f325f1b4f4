"""Kedro pipelines for the co-occurrence graph project."""
