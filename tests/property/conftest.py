"""Pytest configuration for property-based tests.

Property tests build their own stores and ledgers per example and drive
coroutines with ``run_async``; no fixtures live here.
"""
