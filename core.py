# core.py – board geometry, piece tables and the shared gene type
from __future__ import annotations
from typing import Dict, List, Tuple

import numpy as np
from deap import base, creator

# ────────── board ──────────
COLS, ROWS = 10, 21          # row 0 is the floor, the top row is spawn buffer
N_PIECES = 7                 # O, I, L, J, T, S, Z
MAX_ORIENTS, MAX_WIDTH = 4, 4

# ────────── piece geometry (pieceId, orient) ──────────
# width, height, per-column bottom/top offsets measured from the piece's
# lowest row; top is exclusive.
_ORIENTS = [1, 2, 4, 4, 4, 2, 2]
_WIDTH = [
    [2],
    [1, 4],
    [2, 3, 2, 3],
    [2, 3, 2, 3],
    [2, 3, 2, 3],
    [3, 2],
    [3, 2],
]
_HEIGHT = [
    [2],
    [4, 1],
    [3, 2, 3, 2],
    [3, 2, 3, 2],
    [3, 2, 3, 2],
    [2, 3],
    [2, 3],
]
_BOTTOM = [
    [[0, 0]],
    [[0], [0, 0, 0, 0]],
    [[0, 0], [0, 1, 1], [2, 0], [0, 0, 0]],
    [[0, 0], [0, 0, 0], [0, 2], [1, 1, 0]],
    [[0, 1], [1, 0, 1], [1, 0], [0, 0, 0]],
    [[0, 0, 1], [1, 0]],
    [[1, 0, 0], [0, 1]],
]
_TOP = [
    [[2, 2]],
    [[4], [1, 1, 1, 1]],
    [[3, 1], [2, 2, 2], [3, 3], [1, 2, 1]],
    [[1, 3], [2, 1, 1], [3, 3], [2, 2, 2]],
    [[3, 2], [2, 2, 2], [2, 3], [1, 2, 1]],
    [[1, 2, 2], [3, 2]],
    [[2, 2, 1], [2, 3]],
]


def _pack():
    orients = np.array(_ORIENTS, dtype=np.int64)
    width = np.zeros((N_PIECES, MAX_ORIENTS), dtype=np.int64)
    height = np.zeros((N_PIECES, MAX_ORIENTS), dtype=np.int64)
    bottom = np.zeros((N_PIECES, MAX_ORIENTS, MAX_WIDTH), dtype=np.int64)
    top = np.zeros((N_PIECES, MAX_ORIENTS, MAX_WIDTH), dtype=np.int64)
    for p in range(N_PIECES):
        for o in range(_ORIENTS[p]):
            width[p, o] = _WIDTH[p][o]
            height[p, o] = _HEIGHT[p][o]
            for c in range(_WIDTH[p][o]):
                bottom[p, o, c] = _BOTTOM[p][o][c]
                top[p, o, c] = _TOP[p][o][c]
    for arr in (orients, width, height, bottom, top):
        arr.setflags(write=False)
    return orients, width, height, bottom, top


P_ORIENTS, P_WIDTH, P_HEIGHT, P_BOTTOM, P_TOP = _pack()


def piece_cells(piece: int, orient: int) -> int:
    """Number of cells a piece occupies (always 4 for tetrominoes)."""
    return int(sum(P_TOP[piece, orient, c] - P_BOTTOM[piece, orient, c]
                   for c in range(P_WIDTH[piece, orient])))


# ────────── legal moves ──────────
def _legal_moves() -> List[np.ndarray]:
    out = []
    for p in range(N_PIECES):
        moves = [(o, s) for o in range(P_ORIENTS[p])
                 for s in range(COLS - P_WIDTH[p, o] + 1)]
        arr = np.array(moves, dtype=np.int64)
        arr.setflags(write=False)
        out.append(arr)
    return out


LEGAL_MOVES: List[np.ndarray] = _legal_moves()

# padded copy for the JIT game loop
MAX_MOVES = max(len(m) for m in LEGAL_MOVES)
LEGAL = np.zeros((N_PIECES, MAX_MOVES, 2), dtype=np.int64)
N_LEGAL = np.zeros(N_PIECES, dtype=np.int64)
for _p, _m in enumerate(LEGAL_MOVES):
    LEGAL[_p, :len(_m)] = _m
    N_LEGAL[_p] = len(_m)
LEGAL.setflags(write=False)
N_LEGAL.setflags(write=False)


def legal_moves(piece: int) -> np.ndarray:
    """(orient, slot) pairs keeping the piece inside the board columns."""
    return LEGAL_MOVES[piece]


def column_heights(board: np.ndarray) -> np.ndarray:
    """1 + row of the topmost filled cell per column, 0 for empty columns."""
    filled = board != 0
    rows = np.arange(1, board.shape[0] + 1)
    return np.max(np.where(filled, rows[:, None], 0), axis=0).astype(np.int64)


def empty_board() -> Tuple[np.ndarray, np.ndarray]:
    return (np.zeros((ROWS, COLS), dtype=np.int8),
            np.zeros(COLS, dtype=np.int64))


# ────────── heuristics / weights ──────────
FEATURES = [
    'filled_lines', 'holes', 'well_sums',
    'landing_height', 'row_transitions', 'col_transitions',
]
# column titles of the weights table, in FEATURES order
FEATURE_TITLES = [
    'FilledLines', 'Holes', 'WellSums',
    'LandingHeight', 'RowTransitions', 'ColTransitions',
]
DEFAULT_W: Dict[str, float] = {
    'filled_lines':     3.4181268101392694,
    'holes':           -7.899265427351652,
    'well_sums':       -3.3855972247263626,
    'landing_height':  -4.500158825082766,
    'row_transitions': -3.2178882868487753,
    'col_transitions': -9.348695305445199,
}

# ────────── DEAP gene type ──────────
# one weight per FEATURES entry; fitness = avg rows cleared (maximised)
creator.create('FitMax', base.Fitness, weights=(1.0,))
creator.create('Gene', list, fitness=creator.FitMax)


def make_gene(weights, fitness=None):
    if len(weights) != len(FEATURES):
        raise ValueError(f'expected {len(FEATURES)} weights, got {len(weights)}')
    g = creator.Gene(float(w) for w in weights)
    if fitness is not None:
        g.fitness.values = (int(fitness),)
    return g


def gene_fitness_value(gene):
    """Fitness as int, or None while unset."""
    if not gene.fitness.valid:
        return None
    return int(gene.fitness.values[0])


def weights_array(weights) -> np.ndarray:
    w = np.ascontiguousarray(weights, dtype=np.float64)
    if w.shape != (len(FEATURES),):
        raise ValueError(f'expected {len(FEATURES)} weights, got shape {w.shape}')
    return w
