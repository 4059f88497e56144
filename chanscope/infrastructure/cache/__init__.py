"""Caching implementations for fetched channel collections."""
