"""Text analysis pipeline.

Main entry point:
    from textcheck.analysis import AnalysisService

    service = AnalysisService(session, blob_client, artifacts, scorer)
    result = await service.analyze(file_id)
"""

from textcheck.analysis.artifacts import ArtifactCache, RenderOutcome, artifact_file_name
from textcheck.analysis.service import AnalysisService
from textcheck.analysis.similarity import RandomPlaceholderScorer, SimilarityScorer
from textcheck.analysis.statistics import TextStatistics, compute_statistics, decode_text

__all__ = [
    "AnalysisService",
    "ArtifactCache",
    "RandomPlaceholderScorer",
    "RenderOutcome",
    "SimilarityScorer",
    "TextStatistics",
    "artifact_file_name",
    "compute_statistics",
    "decode_text",
]
