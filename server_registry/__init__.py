"""
Persistence and consistency core for a server-metadata registry.

Stores versioned server documents in PostgreSQL JSONB, tracks the latest
version of each server, and serializes concurrent publishes per server name.
"""

__version__ = "0.1.0"
