"""Analysis request building: prompts, shape validation, task extraction,
event-form conversion, the model-facing AnalysisService and the coaching
prefetcher."""

from src.saleslens.analysis.service import AnalysisService, AnalyzeInput

__all__ = ["AnalysisService", "AnalyzeInput"]
