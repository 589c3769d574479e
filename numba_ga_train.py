# numba_ga_train.py – GA fitness: JIT game loop + partitioned worker pool
from __future__ import annotations
import logging
import random
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence, Tuple

import numpy as np
from numba import config, njit

from core import COLS, ROWS, LEGAL, N_LEGAL, weights_array
from numba_core import best_move, drop_piece, next_piece

logger = logging.getLogger(__name__)

NUM_GAMES  = 2     # games averaged per fitness value
MAX_PIECES = 0     # 0 → play until the stack tops out


@njit(cache=True, nogil=True)
def run_game(weights, seed, max_pieces):
    """Rows cleared by one full game with ``weights`` on the ``seed`` stream."""
    board = np.zeros((ROWS, COLS), dtype=np.int8)
    heights = np.zeros(COLS, dtype=np.int64)
    rnd = seed
    lines = pieces = 0

    while max_pieces <= 0 or pieces < max_pieces:
        rnd, kind = next_piece(rnd)
        moves = LEGAL[kind, :N_LEGAL[kind]]
        i = best_move(board, heights, kind, moves, weights)
        cleared = drop_piece(board, heights, kind, moves[i, 0], moves[i, 1])
        if cleared < 0:
            break
        lines += cleared
        pieces += 1
    return lines


def gene_fitness(weights, seeds: Sequence[int], max_pieces: int = MAX_PIECES) -> int:
    """Average rows cleared (floored) over one game per seed.

    A game that raises is logged and scores 0; the others still count.
    """
    w = weights_array(weights)
    total = 0
    for seed in seeds:
        try:
            total += int(run_game(w, int(seed), max_pieces))
        except Exception:
            logger.exception('game with seed %d failed for weights %s',
                             seed, list(w))
    return total // len(seeds)


def partition(n_items: int, n_workers: int) -> List[Tuple[int, int]]:
    """Contiguous [start, stop) ranges, the first ``n_items % n_workers``
    one item longer.  Empty ranges are dropped."""
    if n_workers < 1:
        raise ValueError('n_workers must be >= 1')
    base, left = divmod(n_items, n_workers)
    ranges, start = [], 0
    for w in range(n_workers):
        stop = start + base + (1 if w < left else 0)
        if stop > start:
            ranges.append((start, stop))
        start = stop
    return ranges


class FitnessScheduler:
    """Fills in missing fitness values across a fixed pool of workers.

    Each worker owns one contiguous index range and writes only to the
    fitness of genes inside it, so no locking is needed.  ``evaluate``
    returns only after every worker has finished.
    """

    def __init__(self, n_workers: Optional[int] = None, n_games: int = NUM_GAMES,
                 max_pieces: int = MAX_PIECES, rng: Optional[random.Random] = None):
        if n_games < 1:
            raise ValueError('n_games must be >= 1')
        self.n_workers = n_workers or config.NUMBA_NUM_THREADS
        self.n_games = n_games
        self.max_pieces = max_pieces
        self.rng = rng or random.Random()

    def _work(self, population, seeds, start: int, stop: int) -> int:
        done = 0
        for i in range(start, stop):
            gene = population[i]
            if gene.fitness.valid:
                continue
            fit = gene_fitness(gene, seeds[i], self.max_pieces)
            gene.fitness.values = (fit,)
            done += 1
            logger.debug('gene %d: fitness %d  w=%s', i, fit,
                         [round(w, 3) for w in gene])
        return done

    def evaluate(self, population) -> int:
        """Evaluate every gene without a fitness; returns how many were."""
        if not population:
            return 0
        # seeds drawn up front so results don't depend on thread timing
        seeds = [[self.rng.getrandbits(32) for _ in range(self.n_games)]
                 for _ in population]
        ranges = partition(len(population), self.n_workers)
        with ThreadPoolExecutor(max_workers=len(ranges)) as ex:
            futures = [ex.submit(self._work, population, seeds, a, b)
                       for a, b in ranges]
            done = sum(f.result() for f in futures)
        logger.info('evaluated %d genes on %d workers', done, len(ranges))
        return done
