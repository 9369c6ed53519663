"""Content-addressed storage of uploaded files."""

from textcheck.storage.blob_store import BlobStore, base_file_name, compute_content_hash

__all__ = [
    "BlobStore",
    "base_file_name",
    "compute_content_hash",
]
