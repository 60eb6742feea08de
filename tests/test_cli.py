import numpy as np
import pytest

from metablob import Blob, ElementType
from metablob.cli.main import build_parser, convert_blob, main


def _write_blob(path, binary=False):
    blob = Blob(3)
    blob.identifier = 2
    for i in range(4):
        blob.add_point([0.5 * i, i, -i])
    blob.binary = binary
    blob.write(path)
    return blob


def test_parser_requires_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_info_prints_summary(tmp_path, capsys):
    src = tmp_path / "in.meta"
    _write_blob(src)
    main(["info", str(src)])
    out = capsys.readouterr().out
    assert "NPoints = 4" in out
    assert "ID = 2" in out


def test_convert_to_binary_double(tmp_path, capsys):
    src = tmp_path / "in.meta"
    dst = tmp_path / "out" / "out.meta"
    original = _write_blob(src)
    main(["convert", str(src), str(dst), "--binary", "--element-type", "MET_DOUBLE"])
    assert "[convert] wrote" in capsys.readouterr().out

    converted = Blob.from_file(dst)
    assert converted.binary
    assert converted.element_type is ElementType.MET_DOUBLE
    assert converted.identifier == 2
    np.testing.assert_allclose(converted.points.as_array(), original.points.as_array())


def test_convert_keeps_encoding_by_default(tmp_path):
    src = tmp_path / "in.meta"
    dst = tmp_path / "out.meta"
    _write_blob(src, binary=True)
    main(["convert", str(src), str(dst)])
    assert Blob.from_file(dst).binary


def test_convert_to_integer_warns_on_truncation():
    blob = Blob(1, aux_fields=())
    blob.add_point([1.5])
    with pytest.warns(RuntimeWarning, match="truncated"):
        out = convert_blob(blob, element_type=ElementType.MET_INT)
    assert out.points[0].coordinates.tolist() == [1]


def test_errors_exit_nonzero(tmp_path):
    bad = tmp_path / "bad.meta"
    bad.write_text("NDims = 3\n")
    with pytest.raises(SystemExit) as exc:
        main(["info", str(bad)])
    assert exc.value.code == 1


def test_ply_command_creates_output_directories(tmp_path, capsys):
    pytest.importorskip("trimesh")
    src = tmp_path / "in.meta"
    _write_blob(src)
    dst = tmp_path / "exports" / "nested" / "cells.ply"
    main(["ply", str(src), str(dst)])
    assert dst.exists()
    assert "[ply] wrote" in capsys.readouterr().out


def test_figure_command_creates_output_directories(tmp_path):
    pytest.importorskip("matplotlib")
    src = tmp_path / "in.meta"
    _write_blob(src)
    dst = tmp_path / "figures" / "overview.png"
    main(["figure", str(src), str(dst), "--dpi", "50"])
    assert dst.exists()
