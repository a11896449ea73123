"""Unit tests for /src/rules/square.py"""

import math

import pytest

from src.rules.square import BOARD_DIMENSIONS, Square, is_valid_coordinate, is_valid_index


@pytest.mark.parametrize(
    "algebraic, row, col",
    [
        ("a8", 0, 0),
        ("h8", 0, 7),
        ("a1", 7, 0),
        ("h1", 7, 7),
        ("e2", 6, 4),
        ("e4", 4, 4),
        ("d5", 3, 3),
    ],
)
def test_algebraic_notation(algebraic: str, row: int, col: int) -> None:
    """Row 0 is the 8th rank (black's back rank), col 0 the a-file"""
    square = Square.from_algebraic(algebraic)
    assert square == Square(row, col)
    assert square.to_algebraic() == algebraic


@pytest.mark.parametrize(
    "value",
    [
        {"row": 0, "col": 0},
        {"row": 7, "col": 7},
        {"row": 3, "col": 5},
        Square(4, 4),
    ],
)
def test_valid_coordinates(value: object) -> None:
    assert is_valid_coordinate(value)


@pytest.mark.parametrize(
    "value",
    [
        None,
        "e2",
        {"row": 8, "col": 0},
        {"row": -1, "col": 0},
        {"row": 0, "col": 8},
        {"row": 1.0, "col": 2},
        {"row": 1.5, "col": 2},
        {"row": "1", "col": 2},
        {"row": True, "col": 2},
        {"row": math.nan, "col": 2},
        {"row": math.inf, "col": 2},
        {"row": 1},
        {},
        Square(8, 0),
    ],
)
def test_invalid_coordinates(value: object) -> None:
    """Only real integers in [0, 7] are accepted"""
    assert not is_valid_coordinate(value)


def test_is_valid_index_bounds() -> None:
    num_rows, _ = BOARD_DIMENSIONS
    assert is_valid_index(0, num_rows)
    assert is_valid_index(num_rows - 1, num_rows)
    assert not is_valid_index(num_rows, num_rows)
    assert not is_valid_index(False, num_rows)


def test_raw_roundtrip() -> None:
    square = Square(2, 6)
    assert square.to_raw() == {"row": 2, "col": 6}
    assert Square.from_raw(square.to_raw()) == square


def test_offset_and_bounds() -> None:
    square = Square(0, 0)
    assert square.offset(1, 1) == Square(1, 1)
    assert not square.offset(-1, 0).is_within_bounds()


@pytest.mark.parametrize(
    "algebraic, is_light",
    [("a8", True), ("h1", True), ("a1", False), ("h8", False), ("e4", True), ("d4", False)],
)
def test_square_color(algebraic: str, is_light: bool) -> None:
    assert Square.from_algebraic(algebraic).is_light() is is_light
