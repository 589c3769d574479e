"""numba_features.py – the six board heuristics as JIT kernels.

Every kernel is a pure function of the board it is handed (row 0 = floor,
nonzero = filled).  ``calc_features`` packs them in ``core.FEATURES`` order.
"""
import numpy as np
from numba import njit


@njit(cache=True, nogil=True)
def filled_lines(rows_cleared):
    return float(rows_cleared)


@njit(cache=True, nogil=True)
def holes(board):
    """Empty cells below the topmost filled cell of their column."""
    rows, cols = board.shape
    count = 0
    for c in range(cols):
        top = 0
        for r in range(rows - 1, -1, -1):
            if board[r, c] != 0:
                top = r + 1
                break
        for r in range(top):
            if board[r, c] == 0:
                count += 1
    return float(count)


@njit(cache=True, nogil=True)
def well_sums(board):
    """Sum over well cells of the empty run starting there and going down.

    A well cell is empty with a filled (or wall) neighbour on both sides.
    Each well cell adds its own downward run, so a 3 deep well scores
    3 + 2 + 1.
    """
    rows, cols = board.shape
    total = 0
    for c in range(cols):
        for r in range(rows - 1, -1, -1):
            if board[r, c] != 0:
                continue
            left = c == 0 or board[r, c - 1] != 0
            right = c == cols - 1 or board[r, c + 1] != 0
            if not (left and right):
                continue
            k = r
            while k >= 0 and board[k, c] == 0:
                total += 1
                k -= 1
    return float(total)


@njit(cache=True, nogil=True)
def landing_height(prev_height, piece_height):
    return prev_height + piece_height / 2.0


@njit(cache=True, nogil=True)
def row_transitions(board):
    """Filled/empty changes along each row, walls counted as filled.

    The top row is left out.
    """
    rows, cols = board.shape
    count = 0
    for r in range(rows - 1):
        prev = True
        for c in range(cols):
            cur = board[r, c] != 0
            if cur != prev:
                count += 1
                prev = cur
        if not prev:
            count += 1
    return float(count)


@njit(cache=True, nogil=True)
def col_transitions(board):
    """Filled/empty changes up each column; only the floor counts as filled."""
    rows, cols = board.shape
    count = 0
    for c in range(cols):
        prev = True
        for r in range(rows):
            cur = board[r, c] != 0
            if cur != prev:
                count += 1
                prev = cur
    return float(count)


@njit(cache=True, nogil=True)
def calc_features(board, rows_cleared, prev_height, piece_height):
    out = np.empty(6, dtype=np.float64)
    out[0] = filled_lines(rows_cleared)
    out[1] = holes(board)
    out[2] = well_sums(board)
    out[3] = landing_height(prev_height, piece_height)
    out[4] = row_transitions(board)
    out[5] = col_transitions(board)
    return out


@njit(cache=True, nogil=True)
def eval_position(board, rows_cleared, prev_height, piece_height, weights):
    feats = calc_features(board, rows_cleared, prev_height, piece_height)
    s = 0.0
    for i in range(weights.shape[0]):
        s += weights[i] * feats[i]
    return s
