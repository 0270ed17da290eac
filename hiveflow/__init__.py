"""Hive Flow: workflow graph validation, scheduling and execution engine."""

__version__ = "0.1.0"
