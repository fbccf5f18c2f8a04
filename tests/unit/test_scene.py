import numpy as np
import pytest

from terragrid.core.errors import InvalidConfigurationError
from terragrid.core.grid import build_grid
from terragrid.core.mesh import triangulate
from terragrid.core.pointcloud import PointSet
from terragrid.core.scene import (
    GROUP_LABELS,
    GROUP_LINES,
    GROUP_MESH,
    GROUP_POINTS,
    METERS_TO_INCHES,
    build_scene,
    coordinate_labels,
    grid_line_segments,
    label_interval,
    reference_markers,
    survey_stations,
    to_display_units,
)


def _square() -> PointSet:
    return PointSet.from_points([(0, 0, 10), (10, 0, 12), (0, 10, 11), (10, 10, 13)])


def test_display_scaling() -> None:
    np.testing.assert_allclose(to_display_units([1.0, 2.0, 0.5]), [39.3701, 78.7402, 19.68505])
    np.testing.assert_allclose(to_display_units([3.0], scale=2.0), [6.0])


def test_grid_line_count_and_order() -> None:
    rows = [(i * 10.0, j * 10.0, 1.0) for i in range(4) for j in range(3)]
    grid = build_grid(PointSet.from_points(rows), 10.0)
    lines = list(grid_line_segments(grid))
    # x_count * (y_count - 1) + y_count * (x_count - 1)
    assert len(lines) == 4 * 2 + 3 * 3
    vertical = [ln for ln in lines if ln.tags["type"] == "vertical"]
    horizontal = [ln for ln in lines if ln.tags["type"] == "horizontal"]
    assert lines[: len(vertical)] == vertical
    assert lines[len(vertical):] == horizontal
    assert lines[0].start == (0.0, 0.0, 1.0)
    assert lines[0].end == (0.0, 10.0, 1.0)
    assert horizontal[0].start == (0.0, 0.0, 1.0)
    assert horizontal[0].end == (10.0, 0.0, 1.0)


def test_line_segments_follow_terrain() -> None:
    grid = build_grid(_square(), 10.0)
    first = next(grid_line_segments(grid, scale=2.0, line_style="Thick"))
    assert first.start == (0.0, 0.0, 20.0)
    assert first.end == (0.0, 20.0, 22.0)
    assert first.tags["style"] == "Thick"
    assert first.tags["original_x"] == 0.0
    assert first.tags["spacing"] == 10.0


def test_single_node_grid_has_no_lines() -> None:
    grid = build_grid(PointSet.from_points([(1, 1, 1)]), 5.0)
    assert list(grid_line_segments(grid)) == []


def test_reference_markers_keep_original_values() -> None:
    markers = list(reference_markers(_square(), scale=10.0))
    assert len(markers) == 4
    assert markers[1].position == (100.0, 0.0, 120.0)
    assert markers[1].tags["original_x"] == 10.0
    assert markers[1].tags["elevation"] == 12.0
    assert [m.tags["point_id"] for m in markers] == [1, 2, 3, 4]


@pytest.mark.parametrize("x_count,expected", [(1, 1), (9, 1), (10, 1), (25, 2), (49, 4), (50, 5), (400, 5)])
def test_label_interval(x_count: int, expected: int) -> None:
    assert label_interval(x_count) == expected


def test_coordinate_label_text() -> None:
    pts = PointSet.from_points([(0.123, 0.456, 7.891), (10.123, 10.456, 7.891)])
    grid = build_grid(pts, 10.0)
    labels = list(coordinate_labels(grid))
    assert len(labels) == 4
    assert labels[0].tags["coordinates"] == "0.12,0.46,7.89"
    assert labels[0].tags["coordinate_label"] is True


def test_build_scene_groups_and_counts() -> None:
    pts = _square()
    grid = build_grid(pts, 5.0)
    tris = triangulate(grid)
    scene = build_scene(pts, grid, tris, source_name="square.xyz")
    assert scene.counts() == {"grid_lines": 12, "reference_points": 4, "faces": 8, "labels": 9}
    groups = scene.groups()
    assert set(groups) == {GROUP_LINES, GROUP_POINTS, GROUP_MESH, GROUP_LABELS}
    assert groups[GROUP_MESH] is scene.faces
    assert scene.attributes["source_file"] == "square.xyz"
    assert scene.attributes["display_scale"] == METERS_TO_INCHES
    assert scene.attributes["name"] == "Terrain_Grid_5.0m"


def test_faces_scaled_with_original_tags() -> None:
    pts = _square()
    grid = build_grid(pts, 10.0)
    scene = build_scene(pts, grid, triangulate(grid), scale=2.0)
    face = scene.faces[0]
    assert face.vertices == ((0.0, 0.0, 20.0), (20.0, 0.0, 24.0), (20.0, 20.0, 26.0))
    assert face.tags == {"type": "grid_face", "grid_cell": "0_0_1", "original_coords": "0.0,0.0,10.0"}


def test_scene_without_faces_or_labels() -> None:
    pts = _square()
    grid = build_grid(pts, 10.0)
    scene = build_scene(pts, grid, None, show_labels=False)
    assert scene.faces == []
    assert scene.labels == []
    assert len(scene.lines) == 4


def _line_of_points(n: int) -> PointSet:
    return PointSet.from_points([(float(k), 2.0 * k, 10.0 + k) for k in range(n)])


def test_survey_stations_sample_every_nth_point() -> None:
    stations = list(survey_stations(_line_of_points(25), 10))
    assert [s.tags["point_id"] for s in stations] == [1, 11, 21]
    assert [s.tags["station"] for s in stations] == ["STA1000", "STA1010", "STA1020"]
    assert stations[1].position == (10.0, 20.0, 20.0)
    assert stations[1].tags["original_z"] == 20.0


def test_survey_station_naming_is_configurable() -> None:
    stations = list(survey_stations(_line_of_points(3), 1, prefix="BM-", start=5, step=1, scale=2.0))
    assert [s.tags["station"] for s in stations] == ["BM-5", "BM-6", "BM-7"]
    assert [s.tags["station_number"] for s in stations] == [5, 6, 7]
    assert stations[2].position == (4.0, 8.0, 24.0)
    assert stations[2].tags["original_x"] == 2.0


def test_survey_interval_of_one_keeps_every_point() -> None:
    assert len(list(survey_stations(_line_of_points(7), 1))) == 7
    # fractional intervals are truncated
    assert len(list(survey_stations(_line_of_points(7), 2.9))) == 4


@pytest.mark.parametrize("interval", [0, 0.5, -3, float("nan")])
def test_survey_interval_below_one_rejected(interval) -> None:
    with pytest.raises(InvalidConfigurationError):
        survey_stations(_line_of_points(5), interval)


def test_survey_of_empty_set_has_no_stations() -> None:
    assert list(survey_stations(PointSet.empty(), 10)) == []
