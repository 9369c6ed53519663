"""Database models for textcheck."""

from textcheck.models.analysis import AnalysisResult, Match
from textcheck.models.base import AnalysisBase, StorageBase, utcnow
from textcheck.models.blob import BlobRecord

__all__ = [
    "AnalysisBase",
    "AnalysisResult",
    "BlobRecord",
    "Match",
    "StorageBase",
    "utcnow",
]
