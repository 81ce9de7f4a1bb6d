"""Galactic Archive: durable, queryable index of a directory tree."""

__version__ = "0.1.0"
