"""Adapters layer for the concierge operations console.

This module contains input/output adapters that interface with external systems:
CSV ingestion, relational storage and the language model. Adapters implement
Port interfaces defined in the domain layer.
"""
