#!/usr/bin/env python3
# play.py – play one headless game with a fixed weight vector
from __future__ import annotations
import argparse
import logging

from core import DEFAULT_W
from numba_core import HeuristicAI, State
from weights_file import load_best_weights

logger = logging.getLogger(__name__)

BEST_FILE = 'best_weights.json'
REPORT_EVERY = 10000


def play(ai: HeuristicAI, seed=None, max_pieces=0, report_every=REPORT_EVERY,
         verbose=False) -> int:
    """Drive ``State`` with ``ai`` until it loses (or ``max_pieces``)."""
    s = State(seed)
    while not s.lost and (max_pieces <= 0 or s.turn < max_pieces):
        s.make_move(ai.pick(s))
        if verbose and report_every and s.turn % report_every == 0:
            print(f'Rows cleared: {s.rows_cleared}')
    return s.rows_cleared


def main(argv=None):
    ap = argparse.ArgumentParser(description='Play one Tetris game with fixed weights.')
    ap.add_argument('--weights', default=BEST_FILE,
                    help='json weights (falls back to the built-in defaults)')
    ap.add_argument('--seed', type=int, default=None)
    ap.add_argument('--max-pieces', type=int, default=0)
    args = ap.parse_args(argv)
    logging.basicConfig(level=logging.INFO)

    weights = load_best_weights(args.weights)
    if weights is None:
        logger.info('%s not found, using default weights', args.weights)
        weights = DEFAULT_W
    rows = play(HeuristicAI(weights), args.seed, args.max_pieces, verbose=True)
    print(f'You have completed {rows} rows.')


if __name__ == '__main__':
    main()
