"""Shared fixtures: boards drawn as ASCII art, top row first."""
import numpy as np
import pytest

from core import COLS, ROWS, column_heights


def _make_board(*rows):
    board = np.zeros((ROWS, COLS), dtype=np.int8)
    for r, line in enumerate(reversed(rows)):
        assert len(line) == COLS, line
        for c, ch in enumerate(line):
            if ch == '#':
                board[r, c] = 1
    return board, column_heights(board)


@pytest.fixture
def make_board():
    return _make_board


@pytest.fixture
def filled_cells():
    return lambda board: int(np.count_nonzero(board))
