"""Audio Store - Core application modules.

Provides:
- SQLite model and the serialized MetadataStore
- Pydantic request/response schemas and the error taxonomy
- Core utilities: streaming multipart reader, staged file writer, paths
"""

__version__ = "0.1.0"
