"""Tests for the batch match orchestrator."""

import json
import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from conftest import make_image_bytes, make_photo, make_track
from config.settings import AppSettings, BatchSettings
from core.batch import BatchMatchOrchestrator, PoolFeatures
from core.errors import ValidationError
from core.features.cache import FeatureCache
from core.matching import NO_MATCH_PREFIX, MatchScorer
from core.models.domain import PhotoInput


class FlakyAnalyzer:
    """Delegates to a real analyzer but raises on the n-th call."""

    def __init__(self, inner, fail_on: int):
        self.inner = inner
        self.fail_on = fail_on
        self.calls = 0
        self._lock = threading.Lock()

    def analyze(self, photo):
        with self._lock:
            self.calls += 1
            call = self.calls
        if call == self.fail_on:
            raise RuntimeError("extractor exploded")
        return self.inner.analyze(photo)


class CancellingAnalyzer:
    """Sets the cancel event on its n-th call."""

    def __init__(self, inner, cancel_event, cancel_on: int):
        self.inner = inner
        self.cancel_event = cancel_event
        self.cancel_on = cancel_on
        self.calls = 0

    def analyze(self, photo):
        self.calls += 1
        if self.calls == self.cancel_on:
            self.cancel_event.set()
        return self.inner.analyze(photo)


class SlowAnalyzer:
    """Records the peak number of simultaneous calls."""

    def __init__(self, inner):
        self.inner = inner
        self.active = 0
        self.peak = 0
        self._lock = threading.Lock()

    def analyze(self, photo):
        with self._lock:
            self.active += 1
            self.peak = max(self.peak, self.active)
        try:
            time.sleep(0.01)
            return self.inner.analyze(photo)
        finally:
            with self._lock:
                self.active -= 1


@pytest.fixture
def orchestrator():
    return BatchMatchOrchestrator.from_settings(AppSettings())


@pytest.fixture
def photos():
    return [
        make_photo("warm", (250, 180, 40)),
        make_photo("cool", (30, 80, 200)),
        make_photo("dark", (15, 15, 20)),
    ]


def _tracks(count: int):
    return [make_track(f"t{index}") for index in range(count)]


def test_results_follow_input_order(orchestrator, photos):
    tracks = _tracks(8)
    result = orchestrator.run(tracks, photos, concurrency=3, min_confidence=0.0)
    assert [item.track_id for item in result.results] == [track.id for track in tracks]
    assert all(item.matched_photo_id in {"warm", "cool", "dark"} for item in result.results)


def test_progress_reports_every_completion(orchestrator, photos):
    events = []
    orchestrator.run(_tracks(5), photos, progress_callback=lambda done, total: events.append((done, total)))
    assert events == [(1, 5), (2, 5), (3, 5), (4, 5), (5, 5)]


def test_failing_progress_callback_is_ignored(orchestrator, photos):
    def explode(done, total):
        raise RuntimeError("ui went away")

    result = orchestrator.run(_tracks(4), photos, min_confidence=0.0, progress_callback=explode)
    assert len(result.results) == 4
    assert result.stats.failed_matches == 0


def test_empty_photo_pool(orchestrator):
    result = orchestrator.run([make_track()], [])
    item = result.results[0]
    assert item.matched_photo_id is None
    assert item.confidence == 0.0
    assert result.stats.successful_matches == 0
    assert result.stats.average_confidence == 0.0


def test_single_photo_zero_threshold(orchestrator):
    result = orchestrator.run([make_track()], [make_photo("only")], min_confidence=0.0)
    assert result.results[0].matched_photo_id == "only"
    assert result.stats.successful_matches == 1


def test_one_failing_track_is_isolated(cached_extractor):
    analyzer = FlakyAnalyzer(cached_extractor, fail_on=5)
    orchestrator = BatchMatchOrchestrator(analyzer, MatchScorer(), concurrency=2, min_confidence=0.0)

    pool = [make_photo(f"p{index}", (index * 20, 100, 200)) for index in range(10)]
    result = orchestrator.run(_tracks(10), pool)

    assert len(result.results) == 10
    failed = [item for item in result.results if item.error is not None]
    assert len(failed) == 1
    assert failed[0].matched_photo_id is None
    assert failed[0].confidence == 0.0
    assert failed[0].justification.startswith(NO_MATCH_PREFIX)
    assert "extractor exploded" in failed[0].error
    assert result.stats.failed_matches == 1
    assert result.stats.successful_matches == 9


def test_near_duplicate_photos_offer_alternative(orchestrator):
    data = make_image_bytes((240, 200, 60))
    photos = [PhotoInput(id="first", data=data), PhotoInput(id="second", data=data)]
    item = orchestrator.run([make_track()], photos, min_confidence=0.0, prefer_alternatives=True).results[0]
    assert item.matched_photo_id == "first"
    assert item.alternative_photo_id == "second"
    assert item.alternative_photo_id != item.matched_photo_id


@pytest.mark.parametrize(
    "kwargs",
    [{"concurrency": 0}, {"min_confidence": 1.5}, {"min_confidence": -0.1}],
)
def test_invalid_options_are_rejected(orchestrator, photos, kwargs):
    with pytest.raises(ValidationError):
        orchestrator.run(_tracks(1), photos, **kwargs)


def test_empty_track_list_is_rejected(orchestrator, photos):
    with pytest.raises(ValidationError):
        orchestrator.run([], photos)


def test_duplicate_photo_ids_are_rejected(orchestrator):
    photos = [make_photo("same", (255, 0, 0)), make_photo("same", (0, 0, 255))]
    with pytest.raises(ValueError):
        orchestrator.run(_tracks(1), photos)


def test_cancel_before_start(orchestrator, photos):
    cancel = threading.Event()
    cancel.set()
    events = []
    result = orchestrator.run(_tracks(3), photos, cancel_event=cancel, progress_callback=lambda d, t: events.append(d))

    assert len(result.results) == 3
    assert all(item.error == "cancelled" for item in result.results)
    assert result.stats.cancelled == 3
    assert result.stats.processing_time_ms == 0.0
    assert events == [1, 2, 3]


def test_cancel_mid_batch(cached_extractor):
    cancel = threading.Event()
    analyzer = CancellingAnalyzer(cached_extractor, cancel, cancel_on=1)
    orchestrator = BatchMatchOrchestrator(analyzer, MatchScorer(), concurrency=1, min_confidence=0.0)

    result = orchestrator.run(_tracks(10), [make_photo("only")], cancel_event=cancel)

    assert result.stats.successful_matches == 1
    assert result.stats.cancelled == 9
    assert [item.error for item in result.results[1:]] == ["cancelled"] * 9


def test_concurrency_is_bounded(cached_extractor):
    analyzer = SlowAnalyzer(cached_extractor)
    orchestrator = BatchMatchOrchestrator(analyzer, MatchScorer(), concurrency=2)
    pool = [make_photo(f"p{index}", (index * 30, 60, 90)) for index in range(8)]
    orchestrator.run(_tracks(4), pool)
    assert 1 <= analyzer.peak <= 2


def test_stats(orchestrator, photos):
    result = orchestrator.run(_tracks(4), photos, min_confidence=0.0)
    stats = result.stats
    matched = [item.confidence for item in result.results if item.matched_photo_id]

    assert stats.total_tracks == 4
    assert stats.successful_matches == len(matched)
    assert stats.average_confidence == pytest.approx(sum(matched) / len(matched))
    assert stats.processing_time_ms >= 0.0
    assert 0.0 <= result.overall_confidence <= 1.0


def test_cache_is_shared_across_tracks(photos):
    cache = FeatureCache(capacity=100)
    orchestrator = BatchMatchOrchestrator.from_settings(AppSettings(), cache=cache)
    orchestrator.run(_tracks(6), photos, concurrency=1)
    assert len(cache) == len(photos)
    assert cache.stats().misses == len(photos)


def test_from_settings_uses_batch_defaults():
    settings = AppSettings(batch=BatchSettings(concurrency=5))
    orchestrator = BatchMatchOrchestrator.from_settings(settings)
    assert orchestrator.concurrency == 5
    assert orchestrator.min_confidence == settings.matching.min_confidence


def test_match_track(orchestrator, photos):
    item = orchestrator.match_track(make_track(), photos, min_confidence=0.0)
    assert item.track_id == "track-1"
    assert {score.photo_id for score in item.breakdown} == {"warm", "cool", "dark"}


def test_result_serializes_to_json(orchestrator, photos):
    payload = json.loads(json.dumps(orchestrator.run(_tracks(2), photos).to_dict()))
    assert len(payload["results"]) == 2
    assert payload["stats"]["total_tracks"] == 2


def test_pool_larger_than_cache_is_analyzed_once_per_batch():
    cache = FeatureCache(capacity=100)
    orchestrator = BatchMatchOrchestrator.from_settings(AppSettings(), cache=cache)
    pool = [make_photo(f"p{index:03d}", (index % 256, (index * 7) % 256, (index * 13) % 256), size=(8, 8)) for index in range(101)]

    orchestrator.run(_tracks(3), pool, concurrency=2)

    stats = cache.stats()
    assert stats.misses == len(pool)
    assert stats.evictions == 1


def test_failed_photo_is_retried_by_the_next_track(cached_extractor):
    analyzer = FlakyAnalyzer(cached_extractor, fail_on=1)
    orchestrator = BatchMatchOrchestrator(analyzer, MatchScorer(), concurrency=1, min_confidence=0.0)

    result = orchestrator.run(_tracks(3), [make_photo("only")])

    assert [item.error is None for item in result.results] == [False, True, True]
    assert analyzer.calls == 2


def test_pool_features_share_one_analysis_per_photo(cached_extractor):
    analyzer = SlowAnalyzer(cached_extractor)
    pool = PoolFeatures(analyzer)
    photo = make_photo("only")

    with ThreadPoolExecutor(max_workers=4) as executor:
        results = list(executor.map(lambda _: pool.analyze(photo), range(8)))

    assert all(features is results[0] for features in results)
    assert analyzer.peak == 1
    assert len(pool) == 1
