import random

import pytest

from core import FEATURES, gene_fitness_value, make_gene
from ga_train import (GeneticTrainer, cx_fitness_blend, mut_step,
                      random_population, sel_sample)
from weights_file import load_best_weights, load_population


class FixedRng:
    def __init__(self, roll, index):
        self.roll, self.index = roll, index

    def random(self):
        return self.roll

    def randrange(self, n):
        return self.index


class StubScheduler:
    """Fitness = rounded sum of |weights| for every unevaluated gene."""
    def __init__(self):
        self.calls = 0

    def evaluate(self, population):
        self.calls += 1
        n = 0
        for g in population:
            if not g.fitness.valid:
                g.fitness.values = (int(sum(abs(w) for w in g)),)
                n += 1
        return n


def test_crossover_child_lies_between_parents():
    rng = random.Random(3)
    for _ in range(50):
        a = make_gene([rng.uniform(-10, 10) for _ in FEATURES], rng.randint(1, 500))
        b = make_gene([rng.uniform(-10, 10) for _ in FEATURES], rng.randint(1, 500))
        child = cx_fitness_blend(a, b)
        assert not child.fitness.valid
        for c, x, y in zip(child, a, b):
            assert min(x, y) - 1e-12 <= c <= max(x, y) + 1e-12


def test_crossover_weights_by_fitness():
    a = make_gene([4.0] * 6, 10)
    b = make_gene([0.0] * 6, 30)
    assert list(cx_fitness_blend(a, b)) == pytest.approx([1.0] * 6)


def test_crossover_with_zero_fitness_parents_averages():
    a = make_gene([2.0, -2.0, 0, 0, 0, 0])
    b = make_gene([4.0, -6.0, 0, 0, 0, 0])
    a.fitness.values = b.fitness.values = (0,)
    assert list(cx_fitness_blend(a, b))[:2] == pytest.approx([3.0, -4.0])


@pytest.mark.parametrize('index, expected', [
    (0, 1.2),
    (1, -1.2),
    (2, 0.2),
])
def test_mutation_steps_away_from_zero(index, expected):
    g = make_gene([1.0, -1.0, 0.0, 5.0, 5.0, 5.0])
    mut_step(g, FixedRng(0.0, index), indpb=0.05, step=0.2)
    assert g[index] == pytest.approx(expected)


def test_mutation_skipped_above_rate():
    g = make_gene([1.0] * 6)
    mut_step(g, FixedRng(0.06, 0), indpb=0.05, step=0.2)
    assert list(g) == [1.0] * 6


def test_selection_samples_with_replacement_best_first():
    pop = [make_gene([float(i)] * 6, i + 1) for i in range(3)]
    sample = sel_sample(pop, 10, random.Random(0))
    assert len(sample) == 10
    assert all(any(s is p for p in pop) for s in sample)
    fits = [gene_fitness_value(s) for s in sample]
    assert fits == sorted(fits, reverse=True)


def test_selection_from_empty_population_fails():
    with pytest.raises(ValueError):
        sel_sample([], 5, random.Random(0))


def test_random_population_starts_with_defaults():
    pop = random_population(5, random.Random(0))
    assert len(pop) == 5
    assert pop[0][0] == pytest.approx(3.4181268101392694)
    assert all(len(g) == len(FEATURES) and not g.fitness.valid for g in pop)


def test_generation_replaces_worst_and_persists(tmp_path):
    pop_file, best_file = tmp_path / 'weights.txt', tmp_path / 'best.json'
    sched = StubScheduler()
    trainer = GeneticTrainer(population=random_population(20, random.Random(1)),
                             path=pop_file, best_path=best_file, scheduler=sched,
                             tournament_size=5, seed=42)
    best = trainer.step()

    assert sched.calls == 1 and trainer.generation == 1
    assert len(trainer.population) == 20
    assert best is trainer.population[0]
    evaluated = [g for g in trainer.population if g.fitness.valid]
    assert len(evaluated) == 14
    assert trainer.population[:14] == evaluated
    fits = [gene_fitness_value(g) for g in evaluated]
    assert fits == sorted(fits, reverse=True)

    saved = load_population(pop_file)
    assert len(saved) == 20
    assert [gene_fitness_value(g) for g in saved[:14]] == fits
    assert load_best_weights(best_file) == {
        f: pytest.approx(w) for f, w in zip(FEATURES, best)}


def test_run_evaluates_children_next_generation(tmp_path):
    sched = StubScheduler()
    trainer = GeneticTrainer(population=random_population(10, random.Random(2)),
                             path=None, best_path=None, scheduler=sched,
                             tournament_size=4, seed=0)
    trainer.run(generations=3)
    assert sched.calls == 3 and trainer.generation == 3
    assert sum(not g.fitness.valid for g in trainer.population) == 3


def test_missing_weights_file_gives_empty_population(tmp_path):
    trainer = GeneticTrainer(path=tmp_path / 'none.txt', scheduler=StubScheduler())
    assert trainer.population == []
    with pytest.raises(ValueError):
        trainer.new_gene()


def test_tournament_needs_two_parents():
    with pytest.raises(ValueError):
        GeneticTrainer(population=[], tournament_size=1)
