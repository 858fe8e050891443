"""
DHT torrent metadata catalog.

Ingests metadata announcements from the DHT, normalizes and indexes them,
and keeps a deduplicated catalog in PostgreSQL.
"""

__version__ = "1.0.0"
