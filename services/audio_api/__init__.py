"""Audio Store - HTTP API service.

Multipart ingestion into content storage + metadata table, and
attribute-filtered queries over the stored metadata.
"""

__all__: list[str] = []
