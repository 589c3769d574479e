import logging
import random
import threading

import pytest

import numba_ga_train
from core import DEFAULT_W, FEATURES, gene_fitness_value, make_gene
from numba_ga_train import FitnessScheduler, gene_fitness, partition


@pytest.mark.parametrize('n, workers, expected', [
    (10, 3, [(0, 4), (4, 7), (7, 10)]),
    (9, 3, [(0, 3), (3, 6), (6, 9)]),
    (2, 4, [(0, 1), (1, 2)]),
    (0, 4, []),
])
def test_partition(n, workers, expected):
    assert partition(n, workers) == expected


def test_partition_covers_every_index_once():
    ranges = partition(1000, 44)
    covered = [i for a, b in ranges for i in range(a, b)]
    assert covered == list(range(1000))
    sizes = {b - a for a, b in ranges}
    assert sizes == {22, 23}


def test_partition_rejects_no_workers():
    with pytest.raises(ValueError):
        partition(5, 0)


def test_failed_game_scores_zero_and_is_logged(monkeypatch, caplog):
    def fake_run_game(weights, seed, max_pieces):
        if seed == 2:
            raise RuntimeError('boom')
        return 10
    monkeypatch.setattr(numba_ga_train, 'run_game', fake_run_game)
    with caplog.at_level(logging.ERROR, logger='numba_ga_train'):
        assert gene_fitness([0.0] * 6, [1, 2, 3]) == 20 // 3
    assert 'seed 2 failed' in caplog.text


def test_fitness_is_floored_average(monkeypatch):
    results = iter([5, 6])
    monkeypatch.setattr(numba_ga_train, 'run_game', lambda w, s, m: next(results))
    assert gene_fitness([0.0] * 6, [1, 2]) == 5


def test_evaluate_fills_only_missing_fitness(monkeypatch):
    seen = {}
    lock = threading.Lock()

    def fake_run_game(weights, seed, max_pieces):
        with lock:
            seen.setdefault(threading.get_ident(), 0)
            seen[threading.get_ident()] += 1
        return int(weights[0])

    monkeypatch.setattr(numba_ga_train, 'run_game', fake_run_game)
    pop = [make_gene([i] + [0.0] * 5) for i in range(7)]
    pop[3].fitness.values = (99,)

    sched = FitnessScheduler(n_workers=3, n_games=2, rng=random.Random(1))
    assert sched.evaluate(pop) == 6
    assert [gene_fitness_value(g) for g in pop] == [0, 1, 2, 99, 4, 5, 6]
    assert sum(seen.values()) == 12
    assert sched.evaluate(pop) == 0


def test_evaluate_empty_population():
    assert FitnessScheduler(n_workers=2).evaluate([]) == 0


def test_real_games_in_parallel_are_deterministic():
    w = [DEFAULT_W[f] for f in FEATURES]
    pops = []
    for _ in range(2):
        pop = [make_gene(w) for _ in range(4)]
        FitnessScheduler(n_workers=2, n_games=1, max_pieces=60,
                         rng=random.Random(5)).evaluate(pop)
        pops.append([gene_fitness_value(g) for g in pop])
    assert pops[0] == pops[1]
    assert all(f is not None for f in pops[0])


def test_scheduler_needs_at_least_one_game():
    with pytest.raises(ValueError):
        FitnessScheduler(n_workers=2, n_games=0)
