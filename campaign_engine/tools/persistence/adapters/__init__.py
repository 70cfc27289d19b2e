"""
Record adapters for the campaign and notification stores.

The Redis and Supabase adapters are imported by the factory only when that
backend is selected, so the Supabase SDK is never loaded for the memory or
Redis backends.
"""

from campaign_engine.tools.persistence.adapters.in_memory_adapter import InMemoryAdapter

__all__ = ["InMemoryAdapter"]
