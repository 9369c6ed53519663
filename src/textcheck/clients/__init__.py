"""HTTP clients for the storage service and the word-cloud renderer."""

from textcheck.clients.blob_store import BlobStoreClient
from textcheck.clients.wordcloud import RENDER_OPTIONS, WordCloudClient

__all__ = [
    "BlobStoreClient",
    "RENDER_OPTIONS",
    "WordCloudClient",
]
