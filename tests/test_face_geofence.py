from __future__ import annotations

import math

import numpy as np
import pytest

import constants
from face import InvalidDescriptor, cosine_similarity, match_descriptor, to_vector
from geofence import check_geofence


def test_identical_descriptors_match() -> None:
    descriptor = np.linspace(0.1, 1.0, 128)
    match = match_descriptor(descriptor, descriptor)
    assert match.similarity == pytest.approx(1.0)
    assert match.matched is True


def test_orthogonal_descriptors_do_not_match() -> None:
    a = [1.0, 0.0] * 64
    b = [0.0, 1.0] * 64
    match = match_descriptor(a, b)
    assert match.similarity == 0.0
    assert match.matched is False


def test_threshold_is_configurable(monkeypatch) -> None:
    a = [1.0] * 128
    b = [1.0] * 96 + [0.0] * 32
    similarity = cosine_similarity(np.array(a), np.array(b))
    assert similarity == pytest.approx(math.sqrt(96 / 128))

    monkeypatch.setattr(constants, "FACE_MATCH_THRESHOLD", 0.8)
    assert match_descriptor(a, b).matched is True
    assert match_descriptor(a, b, threshold=0.95).matched is False


@pytest.mark.parametrize(
    "descriptor",
    [
        [0.1] * 127,
        [[0.1] * 128],
        [0.0] * 128,
        [float("nan")] + [0.1] * 127,
        ["a"] * 128,
    ],
)
def test_invalid_descriptors(descriptor) -> None:
    with pytest.raises(InvalidDescriptor):
        to_vector(descriptor)


def test_inside_and_outside_the_campus_circle() -> None:
    center = (12.9716, 77.5946)
    inside = check_geofence(12.9720, 77.5946, center=center, radius_meters=100)
    assert inside.within is True
    assert inside.distance_to_boundary_meters == 0.0

    # roughly 1.1 km north
    outside = check_geofence(12.9816, 77.5946, center=center, radius_meters=100)
    assert outside.within is False
    assert outside.distance_meters == pytest.approx(1112, rel=0.01)
    assert outside.distance_to_boundary_meters == pytest.approx(outside.distance_meters - 100)


def test_geofence_defaults_come_from_config(monkeypatch) -> None:
    monkeypatch.setattr(constants, "CAMPUS_LATITUDE", 0.0)
    monkeypatch.setattr(constants, "CAMPUS_LONGITUDE", 0.0)
    monkeypatch.setattr(constants, "CAMPUS_RADIUS_METERS", 50.0)

    result = check_geofence(0.0, 0.0)
    assert result.within is True
    assert result.radius_meters == 50.0


def test_geofence_rejects_impossible_coordinates() -> None:
    with pytest.raises(ValueError):
        check_geofence(91, 0)
    with pytest.raises(ValueError):
        check_geofence(0, -181)
