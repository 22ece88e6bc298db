"""Simple Linkz — single-user link dashboard."""

__version__ = "0.1.0"
