# ga_train.py – GA weight search (Numba evaluation)
from __future__ import annotations
import argparse
import logging
import random
import time

import numpy as np
from deap import base, creator, tools

from core import FEATURES, DEFAULT_W, gene_fitness_value, make_gene
from numba_ga_train import FitnessScheduler, MAX_PIECES, NUM_GAMES
from weights_file import (WRITE_LIMIT, load_population, save_best_weights,
                          save_population)

logger = logging.getLogger(__name__)

# ───────────────────────── parameters ─────────────────────────
POP_FILE         = 'weights.txt'
BEST_FILE        = 'best_weights.json'
INIT_POP         = 1000     # size of a freshly seeded population
INIT_RANGE       = 10.0     # seeded weights ~ U(-INIT_RANGE, INIT_RANGE)
TOURNAMENT_SIZE  = 100      # draws (with replacement) per selection
REPLACE_FRACTION = 0.3      # share of the population replaced each generation
MUTATION_RATE    = 0.05
MUTATION_STEP    = 0.2


# ───────────────────────── operators ─────────────────────────
def sel_sample(population, k, rng):
    """``k`` random draws with replacement, best fitness first."""
    if not population:
        raise ValueError('population is empty; seed it before selection')
    sample = [rng.choice(population) for _ in range(k)]
    return tools.selBest(sample, len(sample))


def cx_fitness_blend(p1, p2):
    """Child weight = fitness-weighted mean of the parents' weights."""
    f1 = gene_fitness_value(p1) or 0
    f2 = gene_fitness_value(p2) or 0
    if f1 == 0 and f2 == 0:
        f1 = f2 = 1
    total = f1 + f2
    r1, r2 = f1 / total, f2 / total
    return make_gene([a * r1 + b * r2 for a, b in zip(p1, p2)])


def mut_step(gene, rng, indpb, step):
    """With probability ``indpb`` push one weight ``step`` further from 0."""
    if rng.random() < indpb:
        i = rng.randrange(len(gene))
        gene[i] += -step if gene[i] < 0 else step
        del gene.fitness.values
    return gene,


def random_population(n, rng=random):
    tb = base.Toolbox()
    tb.register('attr', rng.uniform, -INIT_RANGE, INIT_RANGE)
    tb.register('individual', tools.initRepeat, creator.Gene,
                tb.attr, n=len(FEATURES))
    pop = tools.initRepeat(list, tb.individual, n)
    if pop:
        pop[0] = make_gene([DEFAULT_W[f] for f in FEATURES])
    return pop


# ───────────────────────── trainer ─────────────────────────
class GeneticTrainer:
    """Evaluate → select → crossover → mutate → replace, once per ``step``."""

    def __init__(self, population=None, path=POP_FILE, best_path=BEST_FILE,
                 scheduler=None, replace_fraction=REPLACE_FRACTION,
                 tournament_size=TOURNAMENT_SIZE, mutation_rate=MUTATION_RATE,
                 mutation_step=MUTATION_STEP, seed=None):
        if tournament_size < 2:
            raise ValueError('tournament_size must be >= 2')
        self.rng = random.Random(seed)
        self.path, self.best_path = path, best_path
        self.population = (list(population) if population is not None
                           else load_population(path))
        self.scheduler = scheduler or FitnessScheduler(
            rng=random.Random(self.rng.getrandbits(32)))
        self.replace_fraction = replace_fraction
        self.generation = 0

        self.tb = base.Toolbox()
        self.tb.register('select', sel_sample, k=tournament_size, rng=self.rng)
        self.tb.register('mate', cx_fitness_blend)
        self.tb.register('mutate', mut_step, rng=self.rng,
                         indpb=mutation_rate, step=mutation_step)

    # ── phases ───────────────────────
    def evaluate(self) -> int:
        return self.scheduler.evaluate(self.population)

    def rank(self):
        self.population = tools.selBest(self.population, len(self.population))

    def new_gene(self):
        sample = self.tb.select(self.population)
        child = self.tb.mate(sample[0], sample[1])
        child, = self.tb.mutate(child)
        return child

    def breed(self, n):
        return [self.new_gene() for _ in range(n)]

    def replace(self, children):
        self.rank()
        keep = max(len(self.population) - len(children), 0)
        self.population = self.population[:keep] + list(children)
        self.rank()
        self.save()

    def save(self):
        if self.path is not None:
            save_population(self.path, self.population, WRITE_LIMIT)
        if self.best_path is not None and self.population \
                and self.population[0].fitness.valid:
            save_best_weights(self.best_path, self.population[0])

    # ── loop ─────────────────────────
    def step(self):
        """Run one generation; returns the best evaluated gene."""
        self.evaluate()
        n_children = round(len(self.population) * self.replace_fraction)
        children = self.breed(n_children)
        self.replace(children)
        self.generation += 1
        best = self.population[0]
        logger.info('generation %d: best fitness %s w=%s', self.generation,
                    gene_fitness_value(best), [round(w, 3) for w in best])
        return best

    def run(self, generations=None):
        """Loop for ``generations`` steps, or until interrupted when None."""
        done = 0
        while generations is None or done < generations:
            self.step()
            done += 1
        return self.population[0]


def summary(trainer):
    fits = [gene_fitness_value(g) for g in trainer.population]
    fits = [f for f in fits if f is not None]
    best = trainer.population[0]
    return (f'Gen {trainer.generation:02d}: best {gene_fitness_value(best)}, '
            f'avg {np.mean(fits) if fits else 0:.1f}  '
            f'w={[round(w, 3) for w in best]}')


# ───────────────────────── main ──────────────────────────────
def main(argv=None):
    ap = argparse.ArgumentParser(description='Evolve Tetris heuristic weights.')
    ap.add_argument('--pop-file', default=POP_FILE)
    ap.add_argument('--best-file', default=BEST_FILE)
    ap.add_argument('--generations', type=int, default=None,
                    help='stop after N generations (default: run until Ctrl-C; '
                         'Ctrl-C waits for running games, so pair it with '
                         '--max-pieces to bound that wait)')
    ap.add_argument('--workers', type=int, default=None)
    ap.add_argument('--games', type=int, default=NUM_GAMES)
    ap.add_argument('--max-pieces', type=int, default=MAX_PIECES)
    ap.add_argument('--seed', type=int, default=None)
    args = ap.parse_args(argv)

    logging.basicConfig(level=logging.INFO,
                        format='%(asctime)s %(levelname)s %(name)s: %(message)s')

    seed_rng = random.Random(args.seed)
    scheduler = FitnessScheduler(n_workers=args.workers, n_games=args.games,
                                 max_pieces=args.max_pieces,
                                 rng=random.Random(seed_rng.getrandbits(32)))
    trainer = GeneticTrainer(path=args.pop_file, best_path=args.best_file,
                             scheduler=scheduler, seed=seed_rng.getrandbits(32))
    if not trainer.population:
        trainer.population = random_population(INIT_POP, seed_rng)
        print(f'Seeded {INIT_POP} random genes (default weights at index 0)')

    start_all = time.time()
    try:
        while args.generations is None or trainer.generation < args.generations:
            trainer.step()
            print(summary(trainer))
    except KeyboardInterrupt:
        print('Interrupted; population saved after the last full generation')
    print(f'Total GA training time: {time.time() - start_all:.1f} sec')


if __name__ == '__main__':
    main()
