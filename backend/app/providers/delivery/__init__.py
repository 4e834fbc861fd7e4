"""Realtime delivery channel adapters."""
