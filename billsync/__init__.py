"""Incremental harvesting of signed bills into a vector index."""

__version__ = '0.1.0'
