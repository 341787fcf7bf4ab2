"""Tests for PathResampler.

Tests: sample counts, exact endpoints, spacing, degenerate paths
Focus: Property-based checks over random polylines with hypothesis

Note: Fixtures are defined in conftest.py.
"""

from math import ceil

import pytest
from hypothesis import assume, given, settings, strategies as st

from cycleslope.core.path_resampler import PathResampler
from cycleslope.model.geo_point import GeoPoint
from cycleslope.model.path_segment import PathSegment, polyline_length_m

from conftest import east_of, north_of


class TestPathResampler:
    """PathResampler - evenly spaced samples along a path."""

    @pytest.mark.parametrize(
        "length_m,interval_m,expected_count",
        [
            (1005.0, 100.0, 12),
            (950.0, 100.0, 11),
            (1005.0, 150.0, 8),
            (50.0, 100.0, 2),
            (120.0, 100.0, 3),
        ],
    )
    def test_sample_count(self, length_m: float, interval_m: float, expected_count: int) -> None:
        """n = ceil(L / interval) steps give n + 1 samples."""
        path = [GeoPoint(0.0, 0.0), north_of(0.0, 0.0, length_m)]
        samples = PathResampler(interval_m=interval_m).resample(path)
        assert len(samples) == expected_count

    def test_step_is_shortened_to_land_on_end(self) -> None:
        """950m at 100m intervals: 10 steps of 95m."""
        path = [GeoPoint(0.0, 0.0), north_of(0.0, 0.0, 950.0)]
        samples = PathResampler(interval_m=100.0).resample(path)

        for a, b in zip(samples, samples[1:]):
            assert a.point.distance_to(b.point) == pytest.approx(95.0, abs=1e-6)
            assert b.distance_m - a.distance_m == pytest.approx(95.0, abs=1e-6)

    def test_endpoints_are_exact(self, path_north: list[GeoPoint]) -> None:
        samples = PathResampler(interval_m=150.0).resample(PathSegment(points=tuple(path_north)))
        assert samples[0].point == path_north[0]
        assert samples[-1].point == path_north[-1]
        assert samples[0].distance_m == 0.0
        assert samples[-1].distance_m == pytest.approx(1050.0, abs=1e-6)

    def test_samples_follow_bends(self) -> None:
        """On an L-shaped path, samples stay on the polyline, not the chord.

        500m north then 550m east: 11 steps of ~95.5m, samples 0-5 on the
        northbound leg, samples 6-11 on the eastbound leg.
        """
        corner = north_of(0.0, 0.0, 500.0)
        end = east_of(corner.lat, corner.lon, 550.0)
        path = [GeoPoint(0.0, 0.0), corner, end]

        samples = PathResampler(interval_m=100.0).resample(path)

        assert len(samples) == 12
        low, high = sorted((corner.lat, end.lat))
        for s in samples[:6]:
            assert s.lon == 0.0
        for s in samples[6:]:
            assert s.lon > 0.0
            assert low - 1e-12 <= s.lat <= high + 1e-12

    def test_resampling_is_idempotent(self, path_north: list[GeoPoint]) -> None:
        """The same input always yields exactly the same samples."""
        resampler = PathResampler(interval_m=100.0)
        assert resampler.resample(path_north) == resampler.resample(path_north)
        assert PathResampler(interval_m=100.0).resample(tuple(path_north)) == resampler.resample(path_north)

    def test_resampling_samples_again_keeps_positions(self, path_north: list[GeoPoint]) -> None:
        resampler = PathResampler(interval_m=100.0)
        once = resampler.resample(path_north)
        twice = resampler.resample([s.point for s in once])

        assert len(twice) == len(once)
        for a, b in zip(once, twice):
            assert a.point.distance_to(b.point) < 1e-3

    def test_samples_have_no_elevation(self, path_north: list[GeoPoint]) -> None:
        samples = PathResampler().resample(path_north)
        assert all(s.elevation is None for s in samples)

    def test_single_point_is_degenerate(self) -> None:
        resampler = PathResampler()
        assert resampler.resample([GeoPoint(1.0, 1.0)]) == []
        assert resampler.is_degenerate([GeoPoint(1.0, 1.0)])

    def test_zero_length_is_degenerate(self) -> None:
        resampler = PathResampler()
        path = [GeoPoint(1.0, 1.0), GeoPoint(1.0, 1.0), GeoPoint(1.0, 1.0)]
        assert resampler.resample(path) == []
        assert resampler.is_degenerate(path)

    def test_below_min_length_is_degenerate(self) -> None:
        path = [GeoPoint(0.0, 0.0), north_of(0.0, 0.0, 0.5)]
        assert PathResampler(min_length_m=1.0).resample(path) == []
        assert len(PathResampler(min_length_m=0.1).resample(path)) == 2

    def test_invalid_interval(self) -> None:
        with pytest.raises(ValueError):
            PathResampler(interval_m=0.0)
        with pytest.raises(ValueError):
            PathResampler(interval_m=-100.0)

    # =========================================================================
    # PROPERTY-BASED
    # =========================================================================

    @given(
        coords=st.lists(
            st.tuples(
                st.floats(min_value=-0.05, max_value=0.05),
                st.floats(min_value=-0.05, max_value=0.05),
            ),
            min_size=2,
            max_size=8,
        ),
        interval_m=st.sampled_from([50.0, 100.0, 150.0]),
    )
    @settings(max_examples=50, deadline=None)
    def test_random_polylines(self, coords: list[tuple[float, float]], interval_m: float) -> None:
        """Count, endpoints and spacing hold for arbitrary polylines."""
        path = [GeoPoint(lat=lat, lon=lon) for lat, lon in coords]
        length = polyline_length_m(path)
        assume(length >= 1.0)

        samples = PathResampler(interval_m=interval_m).resample(path)

        assert len(samples) == ceil(length / interval_m) + 1
        assert samples[0].point == path[0]
        assert samples[-1].point == path[-1]
        for a, b in zip(samples, samples[1:]):
            # Straight-line spacing never exceeds the arc step
            assert a.point.distance_to(b.point) <= interval_m + 1e-3
            assert b.distance_m >= a.distance_m

    @given(
        coords=st.lists(
            st.tuples(
                st.floats(min_value=-0.05, max_value=0.05),
                st.floats(min_value=-0.05, max_value=0.05),
            ),
            min_size=2,
            max_size=8,
        ),
        interval_m=st.sampled_from([50.0, 100.0, 150.0]),
    )
    @settings(max_examples=50, deadline=None)
    def test_resampling_twice_is_identical(self, coords: list[tuple[float, float]], interval_m: float) -> None:
        """Resampling is deterministic: equal inputs give equal outputs, bit for bit."""
        path = [GeoPoint(lat=lat, lon=lon) for lat, lon in coords]
        resampler = PathResampler(interval_m=interval_m)

        assert resampler.resample(path) == resampler.resample(list(path))
