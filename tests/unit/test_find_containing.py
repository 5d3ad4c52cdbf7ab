"""Tests for the find_containing activity.

Covers:
- Ray-casting containment, including vertex regression cases
- Multi-ring features and multi-file matches
- Per-candidate failures (missing file, bad payload, unsupported extension)
- Load-once geometry cache under concurrency
- Result ordering with a thread pool
"""

from __future__ import annotations

import threading
import time

import pytest
from conftest import InMemoryStorage, square_geojson, square_kml

from geoipt.activities.find_containing import (
    RAY_CAST_EPSILON,
    evaluate_candidate,
    evaluate_candidates,
    feature_contains,
    find_containing,
    point_in_ring,
)
from geoipt.core import constants
from geoipt.core.config import LookupConfig
from geoipt.core.context import GeometryCache, QueryContext
from geoipt.models.catalog import InstrumentRecord
from geoipt.models.feature import GeometryFeature, GeometryType, QueryPoint

SQUARE = [(0.0, 0.0), (10.0, 0.0), (10.0, 10.0), (0.0, 10.0), (0.0, 0.0)]


def _record(file_name: str, folder_key: str = "r1") -> InstrumentRecord:
    return InstrumentRecord(file_name=file_name, folder_key=folder_key)


def _context(storage: InMemoryStorage, workers: int = 1) -> QueryContext:
    return QueryContext(storage=storage, config=LookupConfig(max_workers=workers), correlation_id="cid")


class TestPointInRing:
    def test_centre_inside(self) -> None:
        assert point_in_ring(5, 5, SQUARE)

    def test_far_point_outside(self) -> None:
        assert not point_in_ring(20, 20, SQUARE)

    def test_open_ring_treated_as_closed(self) -> None:
        assert point_in_ring(5, 5, SQUARE[:-1])

    def test_vertex_origin_is_inside(self) -> None:
        # Regression lock: the crossing rule counts the lower-left corner in.
        assert point_in_ring(0, 0, SQUARE)

    def test_vertex_opposite_corner_is_outside(self) -> None:
        assert not point_in_ring(10, 10, SQUARE)

    def test_vertex_results_deterministic(self) -> None:
        results = {point_in_ring(0, 0, SQUARE) for _ in range(10)}
        assert len(results) == 1

    def test_concave_ring(self) -> None:
        u_shape = [(0, 0), (3, 0), (3, 3), (2, 3), (2, 1), (1, 1), (1, 3), (0, 3)]
        assert point_in_ring(0.5, 2, u_shape)
        assert not point_in_ring(1.5, 2, u_shape)

    def test_degenerate_ring(self) -> None:
        assert not point_in_ring(0, 0, [(0, 0), (1, 1)])

    def test_epsilon_value(self) -> None:
        assert RAY_CAST_EPSILON == 1e-12
        assert RAY_CAST_EPSILON is constants.RAY_CAST_EPSILON

    def test_horizontal_edges_do_not_divide_by_zero(self) -> None:
        ring = [(0, 5), (10, 5), (10, 5), (10, 10), (0, 10)]
        assert point_in_ring(5, 7, ring)
        assert not point_in_ring(5, 5 - 1e-9, ring)


class TestFeatureContains:
    def test_any_ring_qualifies(self) -> None:
        far = [(50.0, 50.0), (60.0, 50.0), (60.0, 60.0), (50.0, 50.0)]
        feature = GeometryFeature(GeometryType.MULTI_POLYGON, rings=[far, SQUARE])
        assert feature_contains(feature, QueryPoint(lat=5, lon=5))

    def test_point_inside_hole_still_contained(self) -> None:
        # Holes are never parsed, so only the outer ring counts.
        feature = GeometryFeature(GeometryType.POLYGON, rings=[SQUARE])
        assert feature_contains(feature, QueryPoint(lat=5, lon=5))

    def test_outside(self) -> None:
        feature = GeometryFeature(GeometryType.POLYGON, rings=[SQUARE])
        assert not feature_contains(feature, QueryPoint(lat=20, lon=20))


class TestFindContaining:
    POINT = QueryPoint(lat=5, lon=5)

    def test_matches_across_files_and_features(self) -> None:
        two_features = square_geojson(0, 0, 10, 10, properties={"ZONA": "A"})
        two_features["features"].append(  # type: ignore[union-attr]
            square_geojson(4, 4, 6, 6, properties={"ZONA": "B"})["features"][0]  # type: ignore[index]
        )
        storage = InMemoryStorage(
            {
                "capas/r1/a.geojson": two_features,
                "capas/r1/b.kml": square_kml(0, 0, 10, 10, data={"ZONA": "C"}),
                "capas/r1/c.kml": square_kml(50, 50, 60, 60),
            }
        )
        matches = find_containing(
            self.POINT,
            [_record("a.geojson"), _record("b.kml"), _record("c.kml")],
            _context(storage),
        )
        assert [m.feature.attributes["ZONA"] for m in matches] == ["A", "B", "C"]
        assert [m.feature_index for m in matches] == [0, 1, 0]
        assert matches[2].source_file == "b.kml"
        assert matches[2].folder_key == "r1"

    def test_no_match_is_empty(self) -> None:
        storage = InMemoryStorage({"capas/r1/c.kml": square_kml(50, 50, 60, 60)})
        assert find_containing(self.POINT, [_record("c.kml")], _context(storage)) == []

    def test_empty_candidates(self) -> None:
        assert find_containing(self.POINT, [], _context(InMemoryStorage())) == []

    def test_failures_skipped(self, caplog: pytest.LogCaptureFixture) -> None:
        storage = InMemoryStorage(
            {
                "capas/r1/broken.kml": "<kml><not-closed>",
                "capas/r1/empty.json": {"type": "FeatureCollection", "features": []},
                "capas/r1/ok.kml": square_kml(0, 0, 10, 10, data={"ZONA": "OK"}),
                "capas/r1/flaky.kml": square_kml(0, 0, 10, 10),
            },
            failing={"capas/r1/flaky.kml"},
        )
        candidates = [
            _record("missing.kml"),
            _record("broken.kml"),
            _record("empty.json"),
            _record("layer.shp"),
            _record("flaky.kml"),
            _record("ok.kml"),
        ]
        with caplog.at_level("WARNING", logger="geoipt.activities.find_containing"):
            matches = find_containing(self.POINT, candidates, _context(storage))
        assert [m.source_file for m in matches] == ["ok.kml"]
        assert caplog.text.count("Candidate skipped") == 5

    def test_unsupported_extension_not_fetched(self) -> None:
        storage = InMemoryStorage({"capas/r1/layer.shp": b"binary"})
        find_containing(self.POINT, [_record("layer.shp")], _context(storage))
        assert storage.fetches == []


class TestEvaluateCandidate:
    def test_records_error(self) -> None:
        evaluation = evaluate_candidate(QueryPoint(5, 5), _record("missing.kml"), _context(InMemoryStorage()))
        assert evaluation.matched is False
        assert evaluation.error is not None
        assert evaluation.error["code"] == "GEOMETRY_UNAVAILABLE"
        assert evaluation.error["correlation_id"] == "cid"

    def test_records_unsupported_format(self) -> None:
        evaluation = evaluate_candidate(QueryPoint(5, 5), _record("a.shp"), _context(InMemoryStorage()))
        assert evaluation.error is not None
        assert evaluation.error["code"] == "GEOMETRY_FORMAT_UNSUPPORTED"

    def test_counts_features(self) -> None:
        storage = InMemoryStorage({"capas/r1/a.kml": square_kml(0, 0, 10, 10)})
        evaluation = evaluate_candidate(QueryPoint(5, 5), _record("a.kml"), _context(storage))
        assert evaluation.matched
        assert evaluation.feature_count == 1
        assert evaluation.error is None


class TestGeometryCache:
    def test_duplicate_candidates_fetched_once(self) -> None:
        storage = InMemoryStorage({"capas/r1/a.kml": square_kml(0, 0, 10, 10)})
        evaluations = evaluate_candidates(
            QueryPoint(5, 5),
            [_record("a.kml"), _record("a.kml"), _record("a.kml")],
            _context(storage, workers=3),
        )
        assert storage.fetch_count("capas/r1/a.kml") == 1
        assert all(e.matched for e in evaluations)

    def test_failure_cached_per_batch(self) -> None:
        storage = InMemoryStorage()
        evaluate_candidates(QueryPoint(5, 5), [_record("m.kml"), _record("m.kml")], _context(storage))
        assert storage.fetch_count("capas/r1/m.kml") == 1

    def test_same_file_other_folder_not_shared(self) -> None:
        storage = InMemoryStorage(
            {"capas/r1/a.kml": square_kml(0, 0, 10, 10), "capas/r2/a.kml": square_kml(0, 0, 10, 10)}
        )
        evaluate_candidates(QueryPoint(5, 5), [_record("a.kml", "r1"), _record("a.kml", "r2")], _context(storage))
        assert storage.fetch_count("capas/r1/a.kml") == 1
        assert storage.fetch_count("capas/r2/a.kml") == 1

    def test_concurrent_load_once(self) -> None:
        cache: GeometryCache[int] = GeometryCache()
        calls = []
        barrier = threading.Barrier(8)

        def loader() -> int:
            calls.append(1)
            time.sleep(0.05)
            return 42

        results: list[int] = []

        def worker() -> None:
            barrier.wait()
            results.append(cache.get_or_load("k", loader))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results == [42] * 8
        assert len(calls) == 1
        assert cache.load_count == 1
        assert "k" in cache

    def test_error_reraised_to_every_caller(self) -> None:
        cache: GeometryCache[int] = GeometryCache()

        def loader() -> int:
            raise ValueError("boom")

        for _ in range(2):
            with pytest.raises(ValueError, match="boom"):
                cache.get_or_load("k", loader)
        assert cache.load_count == 1


class TestConcurrentOrdering:
    def test_results_in_candidate_order(self) -> None:
        files = {f"capas/r1/f{i}.kml": square_kml(0, 0, 10, 10, data={"ZONA": str(i)}) for i in range(8)}

        class SlowFirstStorage(InMemoryStorage):
            def fetch_bytes(self, path: str) -> bytes:
                if path.endswith("f0.kml"):
                    time.sleep(0.1)
                return super().fetch_bytes(path)

        storage = SlowFirstStorage(files)
        matches = find_containing(
            QueryPoint(5, 5),
            [_record(f"f{i}.kml") for i in range(8)],
            _context(storage, workers=4),
        )
        assert [m.feature.attributes["ZONA"] for m in matches] == [str(i) for i in range(8)]
