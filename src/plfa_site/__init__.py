"""Build pipeline for the Programming Language Foundations in Agda website."""

__version__ = "0.1.0"
