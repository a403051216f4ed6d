"""Binary and JSON puzzle persistence tests."""

from __future__ import annotations

import base64
import time

import pytest

from linepuzzle.cells import ContentCell, Direction, Dot, ElementType, Gap, LineCell
from linepuzzle.puzzle import Fold, Puzzle, SymmetryConfig
from linepuzzle.serializer import (
    ByteReader,
    ByteWriter,
    SerializationError,
    deserialize_puzzle,
    dumps_json,
    serialize_puzzle,
)
from linepuzzle.utils import make_puzzle


def _sample_puzzle() -> Puzzle:
    puzzle = make_puzzle(
        2,
        2,
        starts=[(0, 4)],
        ends=[(4, 0, Direction.LEFT), (4, 4, Direction.BOTTOM)],
        gaps=[(1, 0, Gap.BREAK), (3, 4, Gap.FULL)],
        dots=[(2, 2)],
        name="Sample ✓",
    )
    puzzle.grid[1][1] = ContentCell(ElementType.SQUARE, color="#ff0000ff")
    puzzle.grid[3][1] = ContentCell(ElementType.TRIANGLE, color="#00ff00ff", count=2)
    puzzle.grid[1][3] = ContentCell(ElementType.POLY, color="#0000ff80", polyshape=0x321)
    puzzle.auto_solved = True
    puzzle.settings.negations_cancel_negations = True
    puzzle.settings.fat_startpoints = True
    return puzzle


def _raw(data: str) -> bytes:
    return base64.b64decode(data[1:])


def _encode(raw: bytes) -> str:
    return "_" + base64.b64encode(raw).decode("ascii")


def test_int_encoding_uses_nibble_shifts() -> None:
    """Integers are written as four bytes shifted four bits apart."""
    writer = ByteWriter()
    writer.write_int(0x123)
    assert bytes(writer.data) == b"\x23\x10\x00\x00"
    assert ByteReader(writer.getvalue()).read_int() == 0x123


def test_int_encoding_range() -> None:
    """Values that do not fit the nibble-shifted layout are rejected."""
    with pytest.raises(SerializationError, match="out-of-range"):
        ByteWriter().write_int(0x1000)
    with pytest.raises(SerializationError, match="out-of-range"):
        ByteWriter().write_int(-1)
    with pytest.raises(SerializationError, match="out-of-range"):
        ByteWriter().write_byte(256)


def test_round_trip() -> None:
    """Every cell kind, flag and setting survives the binary form."""
    puzzle = _sample_puzzle()
    data = serialize_puzzle(puzzle)
    assert data.startswith("_")

    decoded = deserialize_puzzle(data)
    assert decoded.name == "Sample ✓"
    assert (decoded.width, decoded.height) == (5, 5)
    assert decoded.grid == puzzle.grid
    assert decoded.auto_solved
    assert decoded.settings == puzzle.settings
    assert decoded.pillar == (False, False)
    assert not decoded.is_symmetry()


@pytest.mark.parametrize("pillar", [(True, False), (False, True), (True, True)])
def test_round_trip_pillar(pillar) -> None:
    """Pillar flags select the lattice shape on decode."""
    puzzle = make_puzzle(2, 2, starts=[(0, 0)], pillar=pillar)
    decoded = deserialize_puzzle(serialize_puzzle(puzzle))
    assert decoded.pillar == pillar
    assert (decoded.width, decoded.height) == (puzzle.width, puzzle.height)
    assert decoded.grid == puzzle.grid


def test_symmetry_flags() -> None:
    """Mirror symmetry is stored as per-axis flags."""
    puzzle = Puzzle(2, 2, symmetry=SymmetryConfig(x=Fold.MIRROR, y=Fold.MIRROR))
    decoded = deserialize_puzzle(serialize_puzzle(puzzle))
    assert decoded.symmetry == SymmetryConfig(x=Fold.MIRROR, y=Fold.MIRROR)


def test_start_byte() -> None:
    """A start cell is written as 1 and a plain cell as 0."""
    puzzle = make_puzzle(1, 1, starts=[(0, 0)])
    raw = _raw(serialize_puzzle(puzzle))
    # version, width, height, name length, flags, then cell (0, 0).
    cell = raw[17:]
    assert cell[:4] == bytes([1, 0, 0, 0])
    assert cell[4] == 1
    assert cell[5] == 0
    assert cell[6 + 4] == 0


def test_end_direction_decode_quirk() -> None:
    """Stored RIGHT and TOP ends read back as LEFT."""
    puzzle = make_puzzle(
        1, 1, ends=[(2, 0, Direction.RIGHT), (0, 0, Direction.TOP), (2, 2, Direction.BOTTOM)]
    )
    decoded = deserialize_puzzle(serialize_puzzle(puzzle))
    assert decoded.grid[2][0].end == Direction.LEFT
    assert decoded.grid[0][0].end == Direction.LEFT
    assert decoded.grid[2][2].end == Direction.BOTTOM


def test_bad_prefix() -> None:
    """Documents must start with the binary prefix."""
    with pytest.raises(SerializationError, match="prefixed"):
        deserialize_puzzle("AAAA")
    with pytest.raises(SerializationError, match="No data"):
        deserialize_puzzle("")
    with pytest.raises(SerializationError, match="base64"):
        deserialize_puzzle("_!!!")


def test_unknown_version() -> None:
    """Future versions are rejected before anything else is read."""
    writer = ByteWriter()
    writer.write_int(1)
    with pytest.raises(SerializationError, match="unknown version"):
        deserialize_puzzle(writer.getvalue())


def test_truncated_stream() -> None:
    """A stream that ends early fails on the first short read."""
    raw = _raw(serialize_puzzle(_sample_puzzle()))
    with pytest.raises(SerializationError, match="Cannot read"):
        deserialize_puzzle(_encode(raw[:-3]))


def test_trailing_bytes() -> None:
    """Bytes left over after the settings flags are an error."""
    raw = _raw(serialize_puzzle(_sample_puzzle()))
    with pytest.raises(SerializationError, match="remain"):
        deserialize_puzzle(_encode(raw + b"\x00"))


def test_unknown_cell_tag() -> None:
    """Unknown cell type tags are rejected."""
    writer = ByteWriter()
    for value in (0, 3, 3):
        writer.write_int(value)
    writer.write_string("")
    writer.write_byte(0)
    writer.write_byte(9)
    writer.data.extend(bytes(9))
    with pytest.raises(SerializationError, match="Unknown cell type"):
        deserialize_puzzle(writer.getvalue())


def test_oversized_header_fails_before_allocation() -> None:
    """A header declaring more cells than the stream holds is rejected up front."""
    writer = ByteWriter()
    for value in (0, 4095, 4095):
        writer.write_int(value)
    writer.write_string("")
    writer.write_byte(0)

    t0 = time.perf_counter()
    with pytest.raises(SerializationError, match="Cannot read"):
        deserialize_puzzle(writer.getvalue())
    assert time.perf_counter() - t0 < 0.5


def test_serialization_error_is_value_error() -> None:
    """Callers may catch persistence failures as ValueError."""
    with pytest.raises(ValueError):
        deserialize_puzzle("nope")


def test_json_form_is_lossless() -> None:
    """The JSON form keeps fold kinds and end directions the binary form cannot."""
    puzzle = _sample_puzzle()
    puzzle.symmetry = SymmetryConfig(x=Fold.ROTATE, diagonal=True)
    puzzle.grid[2][0].end = Direction.TOP

    decoded = deserialize_puzzle(dumps_json(puzzle))
    assert decoded.symmetry == puzzle.symmetry
    assert decoded.grid == puzzle.grid
    assert decoded.grid[2][0].end == Direction.TOP
    assert Puzzle.from_dict(puzzle.to_dict()).grid == puzzle.grid


def test_malformed_json() -> None:
    """Broken or incomplete JSON documents raise SerializationError."""
    with pytest.raises(SerializationError, match="JSON"):
        deserialize_puzzle("{not json")
    with pytest.raises(SerializationError, match="Malformed"):
        Puzzle.from_dict({"width": 5})
    with pytest.raises(SerializationError, match="Grid shape"):
        Puzzle.from_dict({"width": 3, "height": 3, "grid": [[None]]})


def test_decoded_cells_are_fresh() -> None:
    """Decoded line cells carry no trace state."""
    decoded = deserialize_puzzle(serialize_puzzle(_sample_puzzle()))
    cell = decoded.grid[2][2]
    assert isinstance(cell, LineCell)
    assert cell.dot == Dot.BLACK
    assert cell.dir is None
    assert cell.color == 0
