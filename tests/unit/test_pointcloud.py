import io
import logging

import numpy as np
import pytest

from terragrid.core.errors import InvalidConfigurationError, IoFailure
from terragrid.core.pointcloud import PointSet, ingest, read_xyz


def test_ingest_keeps_file_order_and_ignores_trailing_tokens() -> None:
    src = io.StringIO("1 2 3\n4.5 -5 6e1 extra tokens\n  7\t8   9  \n")
    result = ingest(src)
    np.testing.assert_array_equal(
        result.points.xyz,
        np.array([[1.0, 2.0, 3.0], [4.5, -5.0, 60.0], [7.0, 8.0, 9.0]]),
    )
    assert result.diagnostics == []
    assert result.lines_read == 3


def test_invalid_line_is_reported_and_skipped() -> None:
    src = io.StringIO("0 0 10\nabc def ghi\n10 0 12\n")
    points, diagnostics = ingest(src)
    assert len(points) == 2
    assert len(diagnostics) == 1
    assert diagnostics[0].line_number == 2
    assert "non-numeric" in diagnostics[0].reason


def test_short_and_non_finite_lines_are_diagnostics() -> None:
    src = io.StringIO("1 2\n1 2 nan\n1 2 inf\n3 4 5\n")
    result = ingest(src)
    assert len(result.points) == 1
    reasons = [d.reason for d in result.diagnostics]
    assert reasons[0] == "expected at least 3 fields, got 2"
    assert reasons[1].startswith("non-finite")
    assert reasons[2].startswith("non-finite")
    assert [d.line_number for d in result.diagnostics] == [1, 2, 3]


def test_stride_counts_only_non_blank_lines() -> None:
    src = io.StringIO("1 1 1\n\n   \n2 2 2\n3 3 3\n\n4 4 4\n5 5 5\n")
    result = ingest(src, stride=2)
    np.testing.assert_array_equal(result.points.z, np.array([1.0, 3.0, 5.0]))
    assert result.lines_considered == 5
    assert result.lines_skipped_by_stride == 2


def test_stride_one_keeps_everything() -> None:
    lines = "".join(f"{i} {i} {i}\n" for i in range(10))
    assert len(ingest(io.StringIO(lines), stride=1).points) == 10
    assert len(ingest(io.StringIO(lines), stride=3).points) == 4


def test_skipped_stride_lines_are_not_validated() -> None:
    src = io.StringIO("1 1 1\nnot a record\n2 2 2\n")
    result = ingest(src, stride=2)
    assert len(result.points) == 2
    assert result.diagnostics == []


def test_comment_lines_are_diagnostics_by_default() -> None:
    src = io.StringIO("# header\n# Records: 2\n\n1 2 3\n4 5 6\n")
    result = ingest(src)
    assert len(result.points) == 2
    assert [d.line_number for d in result.diagnostics] == [1, 2]
    assert result.lines_considered == 4


def test_header_line_counts_toward_stride() -> None:
    result = ingest(io.StringIO("# c\n1 1 1\n2 2 2\n"), stride=2)
    np.testing.assert_array_equal(result.points.xyz, [[2.0, 2.0, 2.0]])
    assert len(result.diagnostics) == 1
    assert result.diagnostics[0].line_number == 1
    assert result.lines_skipped_by_stride == 1


def test_skip_comments_treats_headers_like_blank_lines() -> None:
    text = "# header\n# Records: 2\n\n1 2 3\n4 5 6\n7 8 9\n"
    result = ingest(io.StringIO(text), skip_comments=True)
    assert len(result.points) == 3
    assert result.diagnostics == []
    assert result.lines_considered == 3
    strided = ingest(io.StringIO(text), stride=2, skip_comments=True)
    np.testing.assert_array_equal(strided.points.z, [3.0, 9.0])


def test_progress_logged_regardless_of_stride(caplog) -> None:
    text = "".join(f"{i} 0 1\n" for i in range(25_000))
    caplog.set_level(logging.DEBUG, logger="terragrid")
    result = ingest(io.StringIO(text), stride=7)
    progress = [r for r in caplog.records if r.getMessage().startswith("Processed ")]
    assert [r.getMessage().split()[1] for r in progress] == ["10000", "20000"]
    assert len(result.points) == 3572


def test_empty_source_yields_empty_set_without_diagnostics() -> None:
    result = ingest(io.StringIO(""))
    assert len(result.points) == 0
    assert result.points.xyz.shape == (0, 3)
    assert result.diagnostics == []


@pytest.mark.parametrize("stride", [0, -1, 1.5, True])
def test_invalid_stride_rejected(stride) -> None:
    with pytest.raises(InvalidConfigurationError):
        ingest(io.StringIO("1 2 3\n"), stride=stride)


def test_read_xyz_missing_file_raises_io_failure(tmp_path) -> None:
    with pytest.raises(IoFailure):
        read_xyz(tmp_path / "missing.xyz")
    with pytest.raises(OSError):
        read_xyz(tmp_path / "missing.xyz")


def test_read_xyz_from_disk(tmp_path) -> None:
    path = tmp_path / "survey.xyz"
    path.write_text("0 0 10\n10 0 12\n", encoding="utf-8")
    result = read_xyz(path)
    assert len(result.points) == 2
    assert result.points[1].z == 12.0


def test_pointset_is_read_only_and_copies_input() -> None:
    raw = np.array([[1.0, 2.0, 3.0]])
    ps = PointSet(raw)
    raw[0, 0] = 99.0
    assert ps.xyz[0, 0] == 1.0
    with pytest.raises(ValueError):
        ps.xyz[0, 0] = 5.0


def test_pointset_rejects_bad_shape() -> None:
    with pytest.raises(ValueError):
        PointSet(np.zeros((3, 2)))
