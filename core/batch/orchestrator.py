# Path: core/batch/orchestrator.py
# Purpose: Match many tracks against a shared photo pool under bounded concurrency.
# Layer: core/batch.
# Details: Worker threads extract and score; the calling thread aggregates results, progress, and statistics.

from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Protocol, Sequence

from config.log import get_logger
from config.settings import AppSettings
from core.errors import PerItemError, ValidationError
from core.features.cache import CachedFeatureExtractor, FeatureCache
from core.features.extractor import FeatureExtractor
from core.matching.scorer import NO_MATCH_PREFIX, MatchScorer
from core.models.domain import (
    BatchResult,
    ItemState,
    MatchResult,
    PhotoFeatureSet,
    PhotoInput,
    ProcessingStats,
    TrackDescriptor,
)
from core.vision import VisionModel, create_vision_model

logger = get_logger("batch")

ProgressCallback = Callable[[int, int], None]


class PhotoAnalyzer(Protocol):
    """Anything that turns a photo input into features (usually a CachedFeatureExtractor)."""

    def analyze(self, photo: PhotoInput) -> PhotoFeatureSet:
        """Return features for a single photo."""


class PoolFeatures:
    """Batch-local map of photo id to features, filled lazily from an analyzer.

    Each photo is analyzed at most once per batch however many tracks ask for it.
    A failed analysis is not remembered, so the next track retries it.
    """

    def __init__(self, analyzer: PhotoAnalyzer) -> None:
        self.analyzer = analyzer
        self._features: Dict[str, PhotoFeatureSet] = {}
        self._photo_locks: Dict[str, threading.Lock] = {}
        self._lock = threading.Lock()

    def analyze(self, photo: PhotoInput) -> PhotoFeatureSet:
        with self._lock:
            cached = self._features.get(photo.id)
            if cached is not None:
                return cached
            photo_lock = self._photo_locks.setdefault(photo.id, threading.Lock())

        # Only tracks waiting on the same photo block each other.
        with photo_lock:
            with self._lock:
                cached = self._features.get(photo.id)
            if cached is not None:
                return cached
            features = self.analyzer.analyze(photo)
            with self._lock:
                self._features[photo.id] = features
            return features

    def __len__(self) -> int:
        with self._lock:
            return len(self._features)


@dataclass
class BatchJob:
    """Transient state of one batch call.

    Each worker writes only the slots of its own item index; the aggregating
    thread reads them after the worker's future has completed.
    """

    tracks: Sequence[TrackDescriptor]
    photos: Sequence[PhotoInput]
    concurrency: int
    min_confidence: float
    prefer_alternatives: bool
    progress_callback: Optional[ProgressCallback] = None
    cancel_event: Optional[threading.Event] = None
    pool: Optional[PoolFeatures] = None
    states: List[ItemState] = field(default_factory=list)
    started: List[Optional[float]] = field(default_factory=list)
    finished: List[Optional[float]] = field(default_factory=list)

    def __post_init__(self) -> None:
        count = len(self.tracks)
        self.states = [ItemState.PENDING] * count
        self.started = [None] * count
        self.finished = [None] * count

    @property
    def cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()


class BatchMatchOrchestrator:
    """Run the match scorer across many tracks, isolating per-track failures."""

    def __init__(
        self,
        analyzer: PhotoAnalyzer,
        scorer: MatchScorer,
        concurrency: int = 2,
        min_confidence: float = 0.5,
        prefer_alternatives: bool = True,
    ) -> None:
        self.analyzer = analyzer
        self.scorer = scorer
        self.concurrency = concurrency
        self.min_confidence = min_confidence
        self.prefer_alternatives = prefer_alternatives

    @classmethod
    def from_settings(
        cls,
        settings: Optional[AppSettings] = None,
        vision_model: Optional[VisionModel] = None,
        cache: Optional[FeatureCache[PhotoFeatureSet]] = None,
    ) -> "BatchMatchOrchestrator":
        """Wire extractor, cache, and scorer from application settings."""

        settings = settings or AppSettings()
        model = vision_model or create_vision_model(settings.vision)
        extractor = FeatureExtractor(model, settings.extractor)
        analyzer = CachedFeatureExtractor(extractor, cache if cache is not None else FeatureCache(settings.cache.capacity))
        scorer = MatchScorer(settings.matching, theme_encoder=model)
        return cls(
            analyzer=analyzer,
            scorer=scorer,
            concurrency=settings.batch.concurrency,
            min_confidence=settings.matching.min_confidence,
            prefer_alternatives=settings.matching.prefer_alternatives,
        )

    def match_track(
        self,
        track: TrackDescriptor,
        photos: Sequence[PhotoInput],
        min_confidence: Optional[float] = None,
        prefer_alternatives: Optional[bool] = None,
    ) -> MatchResult:
        """Analyze the pool (through the cache) and score it for one track."""

        return self._score_track(track, photos, self.analyzer, min_confidence, prefer_alternatives)

    def _score_track(
        self,
        track: TrackDescriptor,
        photos: Sequence[PhotoInput],
        analyzer: PhotoAnalyzer,
        min_confidence: Optional[float],
        prefer_alternatives: Optional[bool],
    ) -> MatchResult:
        candidates = {photo.id: analyzer.analyze(photo) for photo in photos}
        return self.scorer.match(
            track,
            candidates,
            min_confidence=self.min_confidence if min_confidence is None else min_confidence,
            prefer_alternatives=self.prefer_alternatives if prefer_alternatives is None else prefer_alternatives,
        )

    def run(
        self,
        tracks: Sequence[TrackDescriptor],
        photos: Sequence[PhotoInput],
        concurrency: Optional[int] = None,
        min_confidence: Optional[float] = None,
        progress_callback: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
        prefer_alternatives: Optional[bool] = None,
    ) -> BatchResult:
        """
        Match every track against the shared photo pool.

        Returns exactly one MatchResult per track, in input order. Only
        ValidationError is raised; every other failure becomes an error-shaped result.

        External calls:
        - core/features/cache.py::CachedFeatureExtractor.analyze - cached feature extraction, once per photo per batch.
        - core/matching/scorer.py::MatchScorer.match - scoring and selection per track.
        """

        job = BatchJob(
            tracks=list(tracks),
            photos=list(photos),
            concurrency=self.concurrency if concurrency is None else concurrency,
            min_confidence=self.min_confidence if min_confidence is None else min_confidence,
            prefer_alternatives=self.prefer_alternatives if prefer_alternatives is None else prefer_alternatives,
            progress_callback=progress_callback,
            cancel_event=cancel_event,
            pool=PoolFeatures(self.analyzer),
        )
        self._validate(job)

        total = len(job.tracks)
        logger.info("Matching %d tracks against %d photos (concurrency=%d)", total, len(job.photos), job.concurrency)

        results: List[Optional[MatchResult]] = [None] * total
        completed = 0
        with ThreadPoolExecutor(max_workers=job.concurrency, thread_name_prefix="covermatch-batch") as pool:
            futures = {pool.submit(self._process_item, job, index): index for index in range(total)}
            for future in as_completed(futures):
                results[futures[future]] = future.result()
                completed += 1
                self._notify(job.progress_callback, completed, total)

        final = [result for result in results if result is not None]
        stats = self._aggregate(job, final)
        logger.info(
            "Batch finished: %d/%d matched, %d failed, %d cancelled in %.1f ms",
            stats.successful_matches,
            stats.total_tracks,
            stats.failed_matches,
            stats.cancelled,
            stats.processing_time_ms,
        )
        return BatchResult(results=final, stats=stats)

    def _process_item(self, job: BatchJob, index: int) -> MatchResult:
        track = job.tracks[index]
        if job.cancelled:
            job.states[index] = ItemState.CANCELLED
            return MatchResult(
                track_id=track.id,
                matched_photo_id=None,
                confidence=0.0,
                justification="Batch cancelled before this track was processed.",
                error="cancelled",
            )

        job.states[index] = ItemState.RUNNING
        job.started[index] = time.perf_counter()
        try:
            result = self._score_track(track, job.photos, job.pool, job.min_confidence, job.prefer_alternatives)
            job.states[index] = ItemState.SUCCEEDED
            return result
        except Exception as exc:  # noqa: BLE001 - recorded as a per-item failure
            error = PerItemError(track.id, exc)
            logger.error("%s", error, exc_info=True)
            job.states[index] = ItemState.FAILED
            return MatchResult(
                track_id=track.id,
                matched_photo_id=None,
                confidence=0.0,
                justification=f"{NO_MATCH_PREFIX}: {exc}",
                error=str(error),
            )
        finally:
            job.finished[index] = time.perf_counter()

    @staticmethod
    def _notify(callback: Optional[ProgressCallback], completed: int, total: int) -> None:
        if callback is None:
            return
        try:
            callback(completed, total)
        except Exception:  # noqa: BLE001 - progress consumers must not break the batch
            logger.warning("Progress callback failed at %d/%d", completed, total, exc_info=True)

    @staticmethod
    def _validate(job: BatchJob) -> None:
        if not job.tracks:
            raise ValidationError("No tracks provided for matching.")
        if job.concurrency < 1:
            raise ValidationError(f"Concurrency must be at least 1, got {job.concurrency}.")
        if not 0.0 <= job.min_confidence <= 1.0:
            raise ValidationError(f"min_confidence must be within [0, 1], got {job.min_confidence}.")
        for track in job.tracks:
            if not isinstance(track, TrackDescriptor) or not track.id:
                raise ValidationError(f"Invalid track entry: {track!r}")

        seen = set()
        for photo in job.photos:
            if photo.id in seen:
                raise ValidationError(f"Duplicate photo id in pool: {photo.id}")
            seen.add(photo.id)

    @staticmethod
    def _aggregate(job: BatchJob, results: List[MatchResult]) -> ProcessingStats:
        successful = [result for result in results if result.matched_photo_id is not None]
        starts = [value for value in job.started if value is not None]
        ends = [value for value in job.finished if value is not None]
        elapsed_ms = (max(ends) - min(starts)) * 1000 if starts and ends else 0.0

        return ProcessingStats(
            total_tracks=len(job.tracks),
            successful_matches=len(successful),
            failed_matches=sum(1 for state in job.states if state is ItemState.FAILED),
            cancelled=sum(1 for state in job.states if state is ItemState.CANCELLED),
            average_confidence=sum(r.confidence for r in successful) / len(successful) if successful else 0.0,
            processing_time_ms=elapsed_ms,
        )
