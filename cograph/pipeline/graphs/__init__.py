"""
Co-occurrence graph pipeline.
"""

from .nodes import create_pipeline


__all__ = ["create_pipeline"]
