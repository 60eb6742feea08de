import numpy as np
import pytest

from metablob import Blob, BlobIOError, ElementType, FormatError, InvalidArgument, InvalidState, PointRecord
from metablob.blob import COLOR_FIELDS, DEFAULT_COLOR


def _make_blob(n: int = 10, binary: bool = True, element_type=ElementType.MET_FLOAT) -> Blob:
    blob = Blob(3)
    blob.identifier = 0
    blob.element_type = element_type
    for i in range(n):
        blob.add_point([0.2, i, i])
    blob.binary = binary
    return blob


def test_float_binary_scenario(tmp_path):
    blob = Blob(3)
    blob.identifier = 0
    for i in range(10):
        blob.points.append(PointRecord(coordinates=[0.2, i, i], aux=DEFAULT_COLOR))
    blob.binary = True
    blob.element_type = "MET_FLOAT"
    target = tmp_path / "myCNC.meta"
    blob.write(target)

    loaded = Blob.from_file(target)
    assert loaded.point_count == 10
    assert loaded.dimension == 3
    assert loaded.element_type is ElementType.MET_FLOAT
    assert loaded.binary
    for i, p in enumerate(loaded.points):
        np.testing.assert_allclose(p.coordinates, [0.2, i, i], rtol=1e-6)
        assert p.coordinates.dtype == np.float32


def test_element_type_change_with_points_is_invalid_state():
    blob = _make_blob(n=2)
    with pytest.raises(InvalidState):
        blob.element_type = ElementType.MET_DOUBLE
    # same type is not a change
    blob.element_type = ElementType.MET_FLOAT
    blob.clear()
    blob.element_type = ElementType.MET_DOUBLE
    assert blob.element_type is ElementType.MET_DOUBLE


def test_dimension_change_requires_empty_list():
    blob = _make_blob(n=1)
    with pytest.raises(InvalidState):
        blob.dimension = 2
    blob.points.clear()
    blob.dimension = 2
    blob.add_point([1.0, 2.0])
    assert blob.dimension == 2


@pytest.mark.parametrize("dim", [0, -1, 2.5, True])
def test_bad_dimension_rejected(dim):
    with pytest.raises(InvalidArgument):
        Blob(dim)


def test_wrong_shape_point_rejected():
    blob = Blob(3)
    with pytest.raises(InvalidArgument):
        blob.add_point([1.0, 2.0])
    with pytest.raises(InvalidArgument):
        blob.points.append(PointRecord(coordinates=[1.0, 2.0, 3.0], aux=[1.0]))


@pytest.mark.parametrize("binary", [True, False])
@pytest.mark.parametrize("element_type", [ElementType.MET_FLOAT, ElementType.MET_DOUBLE, ElementType.MET_SHORT])
def test_round_trip(tmp_path, binary, element_type):
    blob = Blob(3)
    blob.identifier = 17
    blob.element_type = element_type
    rng = np.random.default_rng(0)
    for _ in range(25):
        coords = rng.integers(-500, 500, size=3) if element_type.is_integer else rng.normal(size=3) * 100.0
        blob.add_point(coords)
    blob.binary = binary
    target = tmp_path / "blob.meta"
    blob.write(target)

    loaded = Blob.from_file(target)
    assert loaded.identifier == 17
    assert loaded.point_count == blob.point_count
    assert loaded.dimension == blob.dimension
    assert loaded.element_type is element_type
    assert loaded.aux_fields == COLOR_FIELDS
    # values are stored in the element type, so both encodings reproduce them exactly
    assert loaded.points == blob.points


def test_write_is_idempotent(tmp_path):
    for binary in (True, False):
        blob = _make_blob(binary=binary)
        a = tmp_path / f"a_{binary}.meta"
        b = tmp_path / f"b_{binary}.meta"
        blob.write(a)
        blob.write(b)
        assert a.read_bytes() == b.read_bytes()

        # read-then-write reproduces the same file
        c = tmp_path / f"c_{binary}.meta"
        Blob.from_file(a).write(c)
        assert a.read_bytes() == c.read_bytes()


def test_copy_isolation():
    blob = _make_blob(n=3)
    blob.name = "original"
    copy = Blob.from_blob(blob)
    assert copy.points == blob.points
    assert copy.name == "original"

    copy.add_point([9.0, 9.0, 9.0])
    copy.points[0].coordinates[0] = 42.0
    assert blob.point_count == 3
    assert blob.points[0].coordinates[0] == np.float32(0.2)
    assert copy.copy().point_count == 4


def test_empty_blob_round_trip(tmp_path):
    blob = Blob(3)
    blob.binary = True
    target = tmp_path / "empty.meta"
    blob.write(target)
    text = target.read_bytes().decode("ascii")
    assert text.endswith("NPoints = 0\nElementDataFile = LOCAL\n")

    loaded = Blob.from_file(target)
    assert loaded.points is not None
    assert loaded.point_count == 0
    assert list(loaded.points) == []


@pytest.mark.parametrize("dim", [1, 100])
@pytest.mark.parametrize("binary", [True, False])
def test_dimension_extremes_round_trip(tmp_path, dim, binary):
    blob = Blob(dim, aux_fields=())
    blob.element_type = ElementType.MET_DOUBLE
    for i in range(4):
        blob.add_point(np.linspace(0.0, 1.0, dim) + i)
    blob.binary = binary
    target = tmp_path / "dims.meta"
    blob.write(target)

    loaded = Blob.from_file(target)
    assert loaded.dimension == dim
    assert loaded.aux_fields == ()
    assert loaded.points == blob.points


def test_truncated_binary_leaves_state_untouched(tmp_path):
    src = _make_blob(n=10)
    target = tmp_path / "full.meta"
    src.write(target)
    data = target.read_bytes()
    truncated = tmp_path / "short.meta"
    truncated.write_bytes(data[:-5])

    victim = _make_blob(n=2, binary=False, element_type=ElementType.MET_DOUBLE)
    victim.identifier = 5
    before = victim.copy()
    with pytest.raises(FormatError):
        victim.read(truncated)
    assert victim.identifier == 5
    assert victim.element_type is ElementType.MET_DOUBLE
    assert not victim.binary
    assert victim.points == before.points


def test_ascii_count_mismatch_is_format_error(tmp_path):
    blob = _make_blob(n=3, binary=False)
    target = tmp_path / "ascii.meta"
    blob.write(target)
    text = target.read_text()

    fewer = tmp_path / "fewer.meta"
    fewer.write_text(text.rsplit("\n", 2)[0] + "\n")
    with pytest.raises(FormatError):
        Blob.from_file(fewer)

    more = tmp_path / "more.meta"
    more.write_text(text + "1 2 3 1 0 0 1\n")
    with pytest.raises(FormatError):
        Blob.from_file(more)

    bad_tokens = tmp_path / "tokens.meta"
    lines = text.splitlines()
    lines[-1] = " ".join(lines[-1].split()[:-1])
    bad_tokens.write_text("\n".join(lines) + "\n")
    with pytest.raises(FormatError):
        Blob.from_file(bad_tokens)


def test_binary_trailing_bytes_are_ignored(tmp_path):
    blob = _make_blob(n=2)
    target = tmp_path / "trailing.meta"
    blob.write(target)
    with target.open("ab") as fh:
        fh.write(b"\x00\x01\x02")
    assert Blob.from_file(target).points == blob.points


def test_missing_file_is_io_error(tmp_path):
    blob = Blob()
    with pytest.raises(BlobIOError):
        blob.read(tmp_path / "nope.meta")
    with pytest.raises(OSError):
        Blob.from_file(tmp_path / "nope.meta")


def test_unwritable_path_is_io_error(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("not a directory")
    with pytest.raises(BlobIOError):
        _make_blob().write(blocker / "child.meta")


def test_write_creates_parent_directories(tmp_path):
    target = tmp_path / "a" / "b" / "blob.meta"
    _make_blob(n=1).write(target)
    assert target.exists()


def test_optional_header_fields_round_trip(tmp_path):
    blob = _make_blob(n=1, binary=False)
    blob.name = "cells"
    blob.parent_id = 3
    blob.comment = "segmented nuclei"
    blob.color = (0.5, 0.25, 1.0, 1.0)
    target = tmp_path / "named.meta"
    blob.write(target)

    loaded = Blob.from_file(target)
    assert loaded.name == "cells"
    assert loaded.parent_id == 3
    assert loaded.comment == "segmented nuclei"
    assert loaded.color == (0.5, 0.25, 1.0, 1.0)


def test_integer_overflow_rejected():
    blob = Blob(2, aux_fields=())
    blob.element_type = ElementType.MET_UCHAR
    blob.add_point([0, 255])
    with pytest.raises(InvalidArgument):
        blob.add_point([0, 256])
    with pytest.raises(InvalidArgument):
        blob.add_point([np.nan, 1])


def test_print_info(capsys):
    blob = _make_blob(n=4)
    blob.identifier = 7
    blob.print_info()
    out = capsys.readouterr().out
    assert "ID = 7" in out
    assert "NDims = 3" in out
    assert "NPoints = 4" in out
    assert "ElementType = MET_FLOAT" in out
    assert "BinaryData = True" in out
    assert blob.point_count == 4


@pytest.mark.parametrize("bad", ["my weight", "", "a\nb", "w=1", " pad", "µ"])
def test_aux_field_names_must_be_single_tokens(bad):
    with pytest.raises(InvalidArgument):
        Blob(2, aux_fields=(bad,))
    blob = Blob(2, aux_fields=())
    with pytest.raises(InvalidArgument):
        blob.aux_fields = ("ok", bad)
    assert blob.aux_fields == ()


def test_custom_aux_fields_round_trip(tmp_path):
    blob = Blob(2, aux_fields=("weight", "label_id"))
    blob.add_point([1.0, 2.0], [3.0, 4.0])
    target = tmp_path / "weights.meta"
    blob.write(target)
    loaded = Blob.from_file(target)
    assert loaded.aux_fields == ("weight", "label_id")
    assert loaded.points == blob.points


@pytest.mark.parametrize("field_name", ["name", "comment"])
@pytest.mark.parametrize("value", ["cells\nElementDataFile = LOCAL", "Zellkerne µm", "a\rb"])
def test_free_text_header_fields_are_validated_on_write(tmp_path, field_name, value):
    blob = _make_blob(n=1)
    setattr(blob, field_name, value)
    target = tmp_path / "text.meta"
    with pytest.raises(InvalidArgument):
        blob.write(target)
    assert not target.exists()


def test_point_list_shape_is_read_only_through_blob():
    blob = _make_blob(n=1)
    with pytest.raises(AttributeError):
        blob.points.dimension = 5
    with pytest.raises(AttributeError):
        blob.points.aux_count = 0
    assert blob.dimension == 3


def test_aux_fields_change_requires_empty_list():
    blob = _make_blob(n=1)
    with pytest.raises(InvalidState):
        blob.aux_fields = ()
    blob.clear()
    blob.aux_fields = ("weight",)
    assert blob.points.aux_count == 1
    blob.add_point([1.0, 2.0, 3.0])
    np.testing.assert_array_equal(blob.points[0].aux, [0.0])


def test_fractional_values_warn_on_integer_blob():
    blob = Blob(3, aux_fields=())
    blob.element_type = ElementType.MET_INT
    with pytest.warns(RuntimeWarning, match="truncates"):
        blob.add_point([0.2, 1, 1])
    assert blob.points[0].coordinates.tolist() == [0, 1, 1]


def _assert_unchanged(blob, before):
    assert blob.identifier == before.identifier
    assert blob.element_type is before.element_type
    assert blob.binary == before.binary
    assert blob.dimension == before.dimension
    assert blob.aux_fields == before.aux_fields
    assert blob.points == before.points


def test_failed_ascii_read_leaves_state_untouched(tmp_path):
    src = _make_blob(n=3, binary=False)
    target = tmp_path / "ascii.meta"
    src.write(target)
    lines = target.read_text().splitlines()
    lines[-2] = "0.2 1.0"
    target.write_text("\n".join(lines) + "\n")

    victim = Blob(2, aux_fields=("weight",))
    victim.element_type = ElementType.MET_DOUBLE
    victim.identifier = 9
    victim.add_point([5.0, 6.0], [7.0])
    before = victim.copy()
    with pytest.raises(FormatError):
        victim.read(target)
    _assert_unchanged(victim, before)


def test_failed_header_read_leaves_state_untouched(tmp_path):
    target = tmp_path / "header.meta"
    target.write_text("ObjectType = Blob\nNDims = 3\nElementType = MET_FLOAT\nElementDataFile = LOCAL\n0.2 0 0\n")

    victim = _make_blob(n=4, binary=True)
    victim.identifier = 11
    before = victim.copy()
    with pytest.raises(FormatError):
        victim.read(target)
    _assert_unchanged(victim, before)
