"""Persisted API request logs."""
