"""Indexing pipeline feature.

A breadth-first tree walker feeds discovered directories and files through a
bounded queue to a worker pool, which reconciles each one against the
``Directories``/``Files`` index with a single conditional upsert.
"""
