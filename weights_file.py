# weights_file.py – population table (text) and best-weights export (json)
from __future__ import annotations
import json
import logging
import os
import pathlib
from typing import Dict, List, Optional

from core import FEATURES, FEATURE_TITLES, gene_fitness_value, make_gene

logger = logging.getLogger(__name__)

HEADER = ' | '.join(FEATURE_TITLES + ['Fitness'])
WRITE_LIMIT = 1000


def _atomic_write(path: pathlib.Path, text: str):
    tmp = path.with_name(path.name + '.tmp')
    tmp.write_text(text, encoding='utf-8')
    os.replace(tmp, path)


def load_population(path) -> List:
    """Genes from a weights table; an absent file gives an empty list.

    Each line holds one weight per feature and an optional integer
    fitness.  A fitness of 0 is read as "not evaluated yet".
    """
    path = pathlib.Path(path)
    if not path.exists():
        logger.warning('weights file %s not found; starting with an empty population', path)
        return []

    genes = []
    with path.open(encoding='utf-8') as f:
        next(f, None)                                   # header
        for lineno, line in enumerate(f, start=2):
            tokens = line.split()
            if not tokens:
                continue
            n = len(FEATURES)
            if len(tokens) < n:
                raise ValueError(f'{path}:{lineno}: expected {n} weights, got {len(tokens)}')
            try:
                weights = [float(t) for t in tokens[:n]]
                fitness = int(tokens[n]) if len(tokens) > n else 0
            except ValueError as e:
                raise ValueError(f'{path}:{lineno}: {e}') from e
            genes.append(make_gene(weights, fitness or None))
    logger.info('loaded %d genes from %s', len(genes), path)
    return genes


def save_population(path, population, limit: int = WRITE_LIMIT):
    """Write the first ``limit`` genes in their current (ranked) order."""
    lines = [HEADER]
    for gene in population[:limit]:
        fit = gene_fitness_value(gene) or 0
        lines.append(' '.join(repr(float(w)) for w in gene) + f' {fit}')
    _atomic_write(pathlib.Path(path), '\n'.join(lines) + '\n')


def save_best_weights(path, gene):
    data = {f: float(w) for f, w in zip(FEATURES, gene)}
    _atomic_write(pathlib.Path(path), json.dumps(data, indent=2))


def load_best_weights(path) -> Optional[Dict[str, float]]:
    path = pathlib.Path(path)
    if not path.exists():
        return None
    data = json.loads(path.read_text(encoding='utf-8'))
    missing = [f for f in FEATURES if f not in data]
    if missing:
        raise ValueError(f'{path}: missing weights for {missing}')
    return {f: float(data[f]) for f in FEATURES}
