"""Allocation QA: validation and rule checking for client/worker/task datasets."""

__version__ = "0.1.0"
