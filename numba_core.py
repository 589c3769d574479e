# numba_core.py – grid simulator + JIT move picker
from __future__ import annotations
import random
from typing import NamedTuple, Optional, Sequence

import numpy as np
from numba import njit

from core import (COLS, N_PIECES, FEATURES, P_WIDTH, P_HEIGHT,
                  P_BOTTOM, P_TOP, empty_board, legal_moves, weights_array)
from numba_features import calc_features, eval_position


# ■ piece stream (same LCG on the Python and JIT side)
@njit(cache=True, nogil=True)
def lcg(x):
    return (x * 1664525 + 1013904223) & 0xFFFFFFFF


@njit(cache=True, nogil=True)
def next_piece(rnd):
    rnd = lcg(rnd)
    return rnd, (rnd >> 16) % N_PIECES


# ■ drop & clear (in place)
@njit(cache=True, nogil=True)
def drop_piece(board, heights, piece, orient, slot):
    """Place a piece on ``board``/``heights`` and clear full rows.

    Returns the number of rows cleared, or -1 when the move tops out; a
    losing move leaves both arrays untouched.  ``slot`` + width must be
    inside the board.
    """
    width = P_WIDTH[piece, orient]
    p_height = P_HEIGHT[piece, orient]

    # lowest height at which every column of the piece clears the stack
    contact = heights[slot] - P_BOTTOM[piece, orient, 0]
    for c in range(1, width):
        cand = heights[slot + c] - P_BOTTOM[piece, orient, c]
        if cand > contact:
            contact = cand

    if contact + p_height >= board.shape[0]:
        return -1

    for c in range(width):
        for r in range(contact + P_BOTTOM[piece, orient, c],
                       contact + P_TOP[piece, orient, c]):
            board[r, slot + c] = 1
        heights[slot + c] = contact + P_TOP[piece, orient, c]

    # top-down, so shifting never touches rows still to be checked
    cols = board.shape[1]
    cleared = 0
    for r in range(contact + p_height - 1, contact - 1, -1):
        full = True
        for c in range(cols):
            if board[r, c] == 0:
                full = False
                break
        if not full:
            continue
        cleared += 1
        for c in range(cols):
            for i in range(r, heights[c]):
                board[i, c] = board[i + 1, c]
            heights[c] -= 1
            while heights[c] >= 1 and board[heights[c] - 1, c] == 0:
                heights[c] -= 1
    return cleared


@njit(cache=True, nogil=True)
def best_move(board, heights, piece, moves, weights):
    """Index into ``moves`` of the highest scoring non-losing placement.

    Ties go to the earlier move; 0 when every move loses.
    """
    best_s = 0.0
    best = 0
    found = False
    for i in range(moves.shape[0]):
        orient, slot = moves[i, 0], moves[i, 1]
        b = board.copy()
        h = heights.copy()
        prev_height = h[slot]
        cleared = drop_piece(b, h, piece, orient, slot)
        if cleared < 0:
            continue
        s = eval_position(b, cleared, prev_height,
                          P_HEIGHT[piece, orient], weights)
        if not found or s > best_s:
            found = True
            best_s = s
            best = i
    return best


# ==================================================================
# Python side
# ==================================================================
class SimulationResult(NamedTuple):
    board: Optional[np.ndarray]      # None → the move loses
    heights: Optional[np.ndarray]
    rows_cleared: int
    prev_height: int
    piece_height: int

    @property
    def lost(self) -> bool:
        return self.board is None

    def features(self) -> np.ndarray:
        if self.board is None:
            raise ValueError('losing move has no board to score')
        return calc_features(self.board, self.rows_cleared,
                             self.prev_height, self.piece_height)


def simulate(board: np.ndarray, heights: np.ndarray, piece: int,
             move: Sequence[int]) -> SimulationResult:
    """Play ``move`` on private copies of ``board`` and ``heights``."""
    orient, slot = int(move[0]), int(move[1])
    b = np.array(board, dtype=np.int8, copy=True)
    h = np.array(heights, dtype=np.int64, copy=True)
    prev_height = int(h[slot])
    p_height = int(P_HEIGHT[piece, orient])
    cleared = drop_piece(b, h, piece, orient, slot)
    if cleared < 0:
        return SimulationResult(None, None, 0, prev_height, p_height)
    return SimulationResult(b, h, int(cleared), prev_height, p_height)


def score(result: SimulationResult, weights) -> float:
    return float(np.dot(weights_array(weights), result.features()))


def pick_move(board, heights, piece: int, moves, weights) -> int:
    """Live move choice: index of the chosen entry of ``moves``."""
    moves = np.ascontiguousarray(moves, dtype=np.int64).reshape(-1, 2)
    return int(best_move(np.ascontiguousarray(board, dtype=np.int8),
                         np.ascontiguousarray(heights, dtype=np.int64),
                         int(piece), moves, weights_array(weights)))


class HeuristicAI:
    """Plays with a fixed weight vector (dict keyed by FEATURES or a sequence)."""
    def __init__(self, weights):
        if isinstance(weights, dict):
            weights = [weights[f] for f in FEATURES]
        self.w_arr = weights_array(weights)

    def pick(self, state: 'State') -> int:
        return pick_move(state.field, state.top, state.next_piece,
                         state.legal_moves(), self.w_arr)


class State:
    """Headless game: field, column tops and a seeded piece stream."""
    def __init__(self, seed: Optional[int] = None):
        self.field, self.top = empty_board()
        self._rnd = random.getrandbits(32) if seed is None else seed & 0xFFFFFFFF
        self.lost = False
        self.rows_cleared = 0
        self.turn = 0
        self.next_piece = self._draw()

    def _draw(self) -> int:
        self._rnd, kind = next_piece(self._rnd)
        return int(kind)

    def legal_moves(self) -> np.ndarray:
        return legal_moves(self.next_piece)

    def make_move(self, index: int) -> bool:
        orient, slot = self.legal_moves()[index]
        cleared = drop_piece(self.field, self.top, self.next_piece,
                             int(orient), int(slot))
        if cleared < 0:
            self.lost = True
            return False
        self.rows_cleared += int(cleared)
        self.turn += 1
        self.next_piece = self._draw()
        return True

    def __repr__(self):
        rows = ['|' + ''.join('#' if v else '.' for v in row) + '|'
                for row in self.field[::-1]]
        return '\n'.join(rows + ['+' + '-' * COLS + '+'])
