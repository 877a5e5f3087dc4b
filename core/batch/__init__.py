# Path: core/batch/__init__.py
# Purpose: Provide bulk track-photo matching.
# Layer: core/batch.
# Details: Exposes the orchestrator, its transient job state, the batch-local pool memo, and the analyzer protocol.

from .orchestrator import BatchJob, BatchMatchOrchestrator, PhotoAnalyzer, PoolFeatures, ProgressCallback

__all__ = ["BatchJob", "BatchMatchOrchestrator", "PhotoAnalyzer", "PoolFeatures", "ProgressCallback"]
