"""
Test suite for the GenePool and its genetic operators.

Validates:
- Construction (gene length, randomized fill, seeded determinism)
- Mixed-radix index encoding and the bounds-checked variant
- Lookup-table decode, including multi-bit and word-straddling entries
- Single-point crossover (partial words, self-inverse, size checks)
- Per-bit mutation
- Fitness aggregation and best-gene tracking
- Roulette selection with elitism and truncated shares
- Reproduction pipeline and population-level elitism
"""

from itertools import product
from typing import List

import numpy as np
import pytest

from bitevolve.evaluators.base import FitnessEvaluator
from bitevolve.evolutionary.bit_vector import BitVector, WordConfig
from bitevolve.evolutionary.exceptions import (
    FieldOverflowError,
    InvalidRangeError,
    SizeMismatchError,
)
from bitevolve.evolutionary.gene import Gene
from bitevolve.evolutionary.gene_pool import GenePool

ALL_ONES = 2 ** 64 - 1


class ListEvaluator(FitnessEvaluator):
    """Returns preset scores and records the order of calls."""

    def __init__(self, scores: List[int]):
        self.scores = scores
        self.calls: List[int] = []

    def fitness(self, gene_id: int) -> int:
        self.calls.append(gene_id)
        return self.scores[gene_id]


def _labelled_pool(n: int, **kwargs) -> GenePool:
    """Pool of 256-bit genes whose word 0 holds gene id + 1."""
    pool = GenePool([8], [1], capacity=n, rng=0, **kwargs)
    for i in range(n):
        pool[i].bits.set_word(0, i + 1)
    return pool


def _fill(gene: Gene, value: int) -> None:
    for w in range(gene.bits.num_words):
        gene.bits.set_word(w, value)


class TestConstruction:
    """Test gene pool construction."""

    def test_gene_length(self):
        """Test gene length = 2**sum(in) * sum(out)."""
        pool = GenePool([2, 5, 5], [1], capacity=3)
        assert pool.gene_length == 4096
        assert len(pool) == 3
        assert all(gene.size == 4096 for gene in pool)
        assert GenePool([2, 2], [2, 1]).gene_length == 16 * 3

    def test_unrandomized_genes_are_zero(self):
        """Test that genes start cleared without randomize."""
        pool = GenePool([8], [1], capacity=2)
        assert all(gene.bits.count_ones() == 0 for gene in pool)

    def test_randomized_fill(self):
        """Test that randomize fills the words."""
        pool = GenePool([8], [1], capacity=4, randomize=True, rng=7)
        assert any(gene.bits.count_ones() > 0 for gene in pool)

    def test_seeded_fill_is_reproducible(self):
        """Test that equal seeds give equal populations."""
        pool1 = GenePool([6], [1], capacity=5, randomize=True, rng=123)
        pool2 = GenePool([6], [1], capacity=5, randomize=True, rng=123)
        assert all(a.bits == b.bits for a, b in zip(pool1, pool2))

    def test_invalid_shapes(self):
        """Test that empty or non-positive field widths are rejected."""
        with pytest.raises(ValueError):
            GenePool([], [1])
        with pytest.raises(ValueError):
            GenePool([2, 0], [1])
        with pytest.raises(ValueError):
            GenePool([2], [1], capacity=-1)

    def test_like_shares_shape_and_generator(self):
        """Test that a pool built with like() matches its template."""
        pool = GenePool([3, 2], [2], capacity=4, rng=1, word_config=WordConfig(32))
        mating = GenePool.like(pool)
        assert len(mating) == 0
        assert mating.gene_length == pool.gene_length
        assert mating.word_config == pool.word_config
        assert mating.rng is pool.rng


class TestCollection:
    """Test add, clear and bit pass-through."""

    def test_add_copies_bits_and_fitness(self):
        """Test that add appends an independent copy."""
        pool = _labelled_pool(2)
        pool[1].fitness = 47
        pool.add(pool[1])
        assert len(pool) == 3
        assert pool[2].bits == pool[1].bits
        assert pool[2].fitness == 47
        pool[2].bits.set_bit(200, 1)
        assert pool[1].bits.get_bit(200) == 0

    def test_add_rejects_wrong_length(self):
        """Test that genes of another length cannot be added."""
        pool = GenePool([8], [1])
        with pytest.raises(SizeMismatchError):
            pool.add(Gene.zeros(128))

    def test_clear(self):
        """Test that clear empties the pool."""
        pool = _labelled_pool(3)
        pool.clear()
        assert len(pool) == 0
        assert pool.capacity == 0

    def test_clear_resets_best(self):
        """Test that a refilled pool does not select a stale best id."""
        pool = _labelled_pool(4)
        pool.fitness(ListEvaluator([0, 0, 0, 9]))
        assert pool.best_id == 3
        donors = _labelled_pool(2)
        pool.clear()
        assert (pool.best_id, pool.best_fitness) == (0, 0)
        for gene in donors:
            pool.add(gene)
        mating = GenePool.like(pool)
        pool.selection(mating, 0)
        assert len(mating) == 1
        assert mating[0].bits == pool[0].bits

    def test_get_set_pass_through(self):
        """Test bit and multi-bit access by gene id."""
        pool = GenePool([2, 2, 4], [1], capacity=2)
        for index in (0, 1, 63, 127, 128, 191):
            pool.set(0, index, 1)
        assert [pool.get(0, i) for i in (0, 1, 2, 63, 127, 128, 191)] == [1, 1, 0, 1, 1, 1, 1]
        pool.set_mult(0, 35, 8, 255)
        pool.set_mult(1, 68, 8, 243)
        assert pool.get_mult(0, 35, 8) == 255
        assert pool.get_mult(1, 68, 8) == 243
        assert pool.get(1, 35) == 0


class TestCalcIndex:
    """Test mixed-radix index encoding."""

    def test_examples(self):
        """Test the two-field encoding examples."""
        pool = GenePool([2, 3], [1])
        assert pool.calc_index([0, 0]) == 0
        assert pool.calc_index([1, 0]) == 1
        assert pool.calc_index([0, 1]) == 4
        assert pool.calc_index([3, 7]) == 31

    def test_blackjack_shape(self):
        """Test the three-field blackjack layout."""
        pool = GenePool([2, 5, 5], [1])
        assert pool.calc_index([0, 0, 0]) == 0
        assert pool.calc_index([1, 0, 0]) == 1
        assert pool.calc_index([0, 1, 0]) == 4
        assert pool.calc_index([0, 0, 1]) == 128

    def test_bijective_over_valid_tuples(self):
        """Test that valid tuples map one-to-one onto [0, 2**sum(widths))."""
        widths = [2, 1, 3]
        pool = GenePool(widths, [1])
        indices = [pool.calc_index(list(t)) for t in product(*(range(2 ** w) for w in widths))]
        assert sorted(indices) == list(range(2 ** sum(widths)))

    def test_unchecked_overflow_spills(self):
        """Test that an oversized value spills into the next field."""
        pool = GenePool([2, 3], [1])
        assert pool.calc_index([4, 0]) == pool.calc_index([0, 1])

    def test_checked_rejects_overflow(self):
        """Test the bounds-checked variant."""
        pool = GenePool([2, 3], [1])
        assert pool.calc_index_checked([3, 7]) == 31
        with pytest.raises(FieldOverflowError):
            pool.calc_index_checked([4, 0])
        with pytest.raises(FieldOverflowError):
            pool.calc_index_checked([-1, 0])
        with pytest.raises(FieldOverflowError):
            pool.calc_index_checked([1])


class TestResult:
    """Test the lookup-table decode."""

    def test_single_bit_result(self):
        """Test that result reads the bit at the encoded index."""
        pool = GenePool([2, 2], [1], capacity=1)
        pool.set(0, pool.calc_index([1, 2]), 1)
        assert pool.result(0, [1, 2]) == 1
        assert pool.result(0, [2, 1]) == 0

    def test_result_reads_at_encoded_index(self):
        """Test that a multi-bit result is the range starting at calc_index."""
        pool = GenePool([2], [2], capacity=1)
        pool.set_mult(0, pool.calc_index([1]), 2, 3)
        assert pool.result(0, [1]) == pool.get_mult(0, 1, 2) == 3
        # neighbouring input states share bits
        assert pool.result(0, [2]) == 1
        assert pool.result(0, [0]) == 2

    def test_set_result_writes_at_encoded_index(self):
        """Test set_result/result with a 3-bit output."""
        pool = GenePool([2], [3], capacity=1)
        pool.set_result(0, [2], 5)
        assert pool.get_mult(0, 2, 3) == 5
        assert pool.result(0, [2]) == 5
        assert pool[0].bits.count_ones() == 2

    def test_result_crossing_word_rejected(self):
        """Test that a result range leaving its word raises InvalidRangeError."""
        pool = GenePool([3], [3], capacity=1, word_config=WordConfig(8))
        with pytest.raises(InvalidRangeError):
            pool.result(0, [7])  # bits 7..9
        with pytest.raises(InvalidRangeError):
            pool.set_result(0, [7], 1)

    def test_result_fields(self):
        """Test splitting a result into output fields, first field lowest."""
        pool = GenePool([2], [1, 2], capacity=1)
        pool.set_result(0, [2], 0b101)
        assert pool.result_fields(0, [2]) == (1, 2)

    def test_table_entries_do_not_overlap(self):
        """Test the scaled layout at calc_index * out_bits."""
        pool = GenePool([2], [3], capacity=1)
        pool.set_table_entry(0, [2], 5)
        assert pool.table_entry(0, [2]) == 5
        assert pool.get_mult(0, 6, 3) == 5
        assert pool.table_entry(0, [1]) == 0
        assert pool.table_entry(0, [3]) == 0

    def test_table_entry_straddling_words(self):
        """Test table entries that cross a word boundary."""
        pool = GenePool([3], [3], capacity=1, word_config=WordConfig(8))
        pool.set_table_entry(0, [2], 7)  # bits 6..8 span words 0 and 1
        assert pool.table_entry(0, [2]) == 7
        assert pool.table_entry(0, [1]) == 0
        assert pool.table_entry(0, [3]) == 0
        assert pool[0].bits.count_ones() == 3

    def test_table_entry_matches_result_for_one_bit(self):
        """Test that both layouts agree for a one-bit output."""
        widths = [2, 2]
        pool = GenePool(widths, [1], capacity=1, randomize=True, rng=17)
        for values in product(*(range(2 ** w) for w in widths)):
            assert pool.table_entry(0, list(values)) == pool.result(0, list(values))


class TestCrossover:
    """Test single-point crossover."""

    def _ones_and_zeros(self):
        pool = GenePool([8], [1], capacity=2)
        _fill(pool[0], ALL_ONES)
        return pool

    def test_partial_word(self):
        """Test crossing inside a word swaps only the low bits."""
        pool = self._ones_and_zeros()
        pool.cross(0, 1, 100)
        a, b = pool[0].bits, pool[1].bits
        assert a.get_bit(99) == 0 and a.get_bit(100) == 1
        assert b.get_bit(99) == 1 and b.get_bit(100) == 0
        assert a.count_ones() == 156
        assert b.count_ones() == 100

    def test_word_aligned_point(self):
        """Test a point on a word boundary."""
        pool = self._ones_and_zeros()
        pool.cross(0, 1, 128)
        assert [pool[0].bits.get_word(w) for w in range(4)] == [0, 0, ALL_ONES, ALL_ONES]
        assert [pool[1].bits.get_word(w) for w in range(4)] == [ALL_ONES, ALL_ONES, 0, 0]

    def test_endpoints(self):
        """Test point 0 (no change) and point == length (full swap)."""
        pool = self._ones_and_zeros()
        pool.cross(0, 1, 0)
        assert pool[0].bits.count_ones() == 256
        pool.cross(0, 1, 256)
        assert pool[0].bits.count_ones() == 0
        assert pool[1].bits.count_ones() == 256

    def test_self_inverse(self):
        """Test that repeating a crossover restores both genomes."""
        pool = GenePool([7], [1], capacity=2, randomize=True, rng=5)
        original_a, original_b = pool[0].bits.copy(), pool[1].bits.copy()
        for point in (0, 1, 63, 64, 65, 100, 127, 128):
            pool.cross(0, 1, point)
            pool.cross(0, 1, point)
            assert pool[0].bits == original_a
            assert pool[1].bits == original_b

    def test_direct_genomes(self):
        """Test crossover on genes outside the pool and on raw bit vectors."""
        pool = GenePool([6], [1])
        a = BitVector(64)
        b = BitVector(64)
        b.set_word(0, ALL_ONES)
        pool.crossover(a, b, 10)
        assert a.get_word(0) == 0b1111111111
        assert b.get_word(0) == ALL_ONES ^ 0b1111111111
        gene_a, gene_b = Gene.zeros(64), Gene.zeros(64)
        gene_b.bits.set_bit(3, 1)
        pool.crossover(gene_a, gene_b, 4)
        assert gene_a.bits.get_bit(3) == 1 and gene_b.bits.get_bit(3) == 0

    def test_size_mismatch(self):
        """Test that genomes of different lengths cannot be crossed."""
        pool = GenePool([6], [1])
        with pytest.raises(SizeMismatchError):
            pool.crossover(BitVector(64), BitVector(128), 10)

    def test_point_out_of_range(self):
        """Test that points outside [0, length] are rejected."""
        pool = GenePool([6], [1], capacity=2)
        with pytest.raises(ValueError):
            pool.cross(0, 1, 65)
        with pytest.raises(ValueError):
            pool.cross(0, 1, -1)


class TestMutate:
    """Test per-bit mutation."""

    def test_zero_rate_changes_nothing(self):
        """Test that rate 0 never flips."""
        pool = GenePool([8], [1], capacity=1, randomize=True, rng=3)
        before = pool[0].bits.copy()
        assert pool.mutate(pool[0], 0.0) == 0
        assert pool[0].bits == before

    def test_full_rate_flips_everything(self):
        """Test that rate 1 complements every bit."""
        pool = GenePool([8], [1], capacity=1)
        assert pool.mutate(pool[0], 1.0) == 256
        assert pool[0].bits.count_ones() == 256

    def test_flip_count_matches(self):
        """Test that the returned count equals the bits changed."""
        pool = GenePool([10], [1], capacity=1, rng=11)
        flipped = pool.mutate(pool[0], 0.1)
        assert pool[0].bits.count_ones() == flipped
        assert 0 < flipped < 1024

    def test_invalid_rate(self):
        """Test that rates outside [0, 1] raise ValueError."""
        pool = GenePool([4], [1], capacity=1)
        with pytest.raises(ValueError):
            pool.mutate(pool[0], 1.5)


class TestFitness:
    """Test the fitness pass."""

    def test_total_and_best(self):
        """Test total fitness and earliest-wins tie breaking."""
        pool = _labelled_pool(4)
        evaluator = ListEvaluator([3, 7, 7, 1])
        assert pool.fitness(evaluator) == 18
        assert evaluator.calls == [0, 1, 2, 3]
        assert [g.fitness for g in pool] == [3, 7, 7, 1]
        assert pool.best_id == 1
        assert pool.best_fitness == 7
        assert pool.average_fitness() == pytest.approx(4.5)

    def test_all_zero(self):
        """Test that an all-zero generation keeps gene 0 as best."""
        pool = _labelled_pool(3)
        assert pool.fitness(ListEvaluator([0, 0, 0])) == 0
        assert pool.best_id == 0
        assert pool.best_fitness == 0

    def test_recomputed_each_pass(self):
        """Test that a new pass replaces previous scores and best."""
        pool = _labelled_pool(3)
        pool.fitness(ListEvaluator([1, 9, 2]))
        pool.fitness(ListEvaluator([4, 0, 5]))
        assert [g.fitness for g in pool] == [4, 0, 5]
        assert pool.best_id == 2

    def test_threaded_matches_sequential(self):
        """Test that worker threads produce the same scores and best."""
        scores = [5, 2, 9, 9, 1, 0, 9, 3]
        sequential = _labelled_pool(8)
        threaded = _labelled_pool(8)
        assert sequential.fitness(ListEvaluator(scores)) == threaded.fitness(
            ListEvaluator(scores), workers=4
        )
        assert threaded.best_id == sequential.best_id == 2
        assert [g.fitness for g in threaded] == scores

    def test_invalid_scores(self):
        """Test that negative or non-integer scores raise ValueError."""
        pool = _labelled_pool(2)
        with pytest.raises(ValueError):
            pool.fitness(ListEvaluator([1, -1]))
        with pytest.raises(ValueError):
            pool.fitness(ListEvaluator([1, 0.5]))

    def test_numpy_integer_scores(self):
        """Test that numpy integer scores are accepted."""
        pool = _labelled_pool(2)
        assert pool.fitness(ListEvaluator([np.int64(2), np.int32(3)])) == 5


class TestSelection:
    """Test roulette selection with elitism."""

    def test_equal_fitness(self):
        """Test four equal genes: one copy each plus the elite."""
        pool = _labelled_pool(4)
        total = pool.fitness(ListEvaluator([1, 1, 1, 1]))
        mating = GenePool.like(pool)
        pool.selection(mating, total)
        assert len(mating) == 5
        assert [g.bits.get_word(0) for g in mating] == [1, 1, 2, 3, 4]

    def test_elite_first(self):
        """Test that entry 0 is the best gene with its fitness."""
        pool = _labelled_pool(4)
        total = pool.fitness(ListEvaluator([3, 7, 7, 1]))
        mating = GenePool.like(pool)
        pool.selection(mating, total)
        assert mating[0].bits == pool[1].bits
        assert mating[0].fitness == 7
        # shares: floor(3*4/18)=0, floor(28/18)=1, 1, 0
        assert len(mating) == 3
        assert max(g.fitness for g in mating) == pool.best_fitness

    def test_truncation_drops_remainders(self):
        """Test that fractional shares are dropped, shrinking the mating pool."""
        pool = _labelled_pool(2)
        total = pool.fitness(ListEvaluator([1, 2]))
        mating = GenePool.like(pool)
        pool.selection(mating, total)
        # floor(1/3*2)=0, floor(2/3*2)=1
        assert len(mating) == 2
        assert [g.bits.get_word(0) for g in mating] == [2, 2]

    def test_zero_total_keeps_only_elite(self):
        """Test that an all-zero generation yields a single-gene mating pool."""
        pool = _labelled_pool(4)
        total = pool.fitness(ListEvaluator([0, 0, 0, 0]))
        mating = GenePool.like(pool)
        pool.selection(mating, total)
        assert len(mating) == 1
        assert mating[0].bits == pool[0].bits

    def test_selection_clears_previous_pool(self):
        """Test that the mating pool is rebuilt from scratch."""
        pool = _labelled_pool(2)
        mating = GenePool.like(pool, capacity=10)
        total = pool.fitness(ListEvaluator([1, 1]))
        pool.selection(mating, total)
        assert len(mating) == 3


class TestReproduction:
    """Test the reproduction pipeline."""

    def test_elite_survives_unmutated(self):
        """Test that slot 0 receives the elite even at mutation rate 1."""
        pool = GenePool([4], [1], capacity=5, rng=0)
        total = pool.fitness(ListEvaluator([1] * 5))
        mating = GenePool.like(pool)
        pool.selection(mating, total)
        pool.reproduction(mating, 1.0, 0.0)
        assert pool[0].bits == mating[0].bits
        assert pool[0].fitness == mating[0].fitness == 1
        assert pool[0].bits.count_ones() == 0
        assert all(pool[i].bits.count_ones() == 16 for i in range(1, 5))

    def test_children_have_one_crossover_point(self):
        """Test that without mutation each child is a low/high splice of two parents."""
        pool = GenePool([6], [1], capacity=6, rng=21)
        _fill(pool[0], ALL_ONES)
        total = pool.fitness(ListEvaluator([1, 1, 1, 1, 1, 1]))
        mating = GenePool.like(pool)
        pool.selection(mating, total)
        pool.reproduction(mating, 0.0, 1.0)
        for gene in pool:
            bits = list(gene.bits)
            changes = sum(1 for x, y in zip(bits, bits[1:]) if x != y)
            assert changes <= 1

    def test_fitness_left_stale(self):
        """Test that non-elite slots keep their previous fitness value."""
        pool = _labelled_pool(3)
        total = pool.fitness(ListEvaluator([2, 5, 8]))
        mating = GenePool.like(pool)
        pool.selection(mating, total)
        pool.reproduction(mating, 0.01, 0.9)
        assert pool[0].fitness == 8
        assert [pool[1].fitness, pool[2].fitness] == [5, 8]

    def test_reproducible_with_seed(self):
        """Test that equal seeds give identical next generations."""
        def next_generation():
            pool = GenePool([6], [1], capacity=8, randomize=True, rng=99)
            mating = GenePool.like(pool)
            total = pool.fitness(ListEvaluator([1, 2, 3, 4, 5, 6, 7, 8]))
            pool.selection(mating, total)
            pool.reproduction(mating, 0.05, 0.9)
            return [gene.bits.copy() for gene in pool]

        assert next_generation() == next_generation()

    def test_empty_mating_pool(self):
        """Test that reproduction needs at least one parent."""
        pool = _labelled_pool(2)
        with pytest.raises(ValueError):
            pool.reproduction(GenePool.like(pool), 0.01, 0.9)

    def test_invalid_rates(self):
        """Test that rates outside [0, 1] are rejected."""
        pool = _labelled_pool(2)
        mating = GenePool.like(pool)
        mating.add(pool[0])
        with pytest.raises(ValueError):
            pool.reproduction(mating, -0.1, 0.9)
        with pytest.raises(ValueError):
            pool.reproduction(mating, 0.1, 1.1)

    def test_shape_mismatch(self):
        """Test that a mating pool of another gene length is rejected."""
        pool = _labelled_pool(2)
        other = GenePool([4], [1], capacity=1)
        with pytest.raises(SizeMismatchError):
            pool.reproduction(other, 0.1, 0.9)


class TestDump:
    """Test the debugging dump."""

    def test_to_text(self):
        """Test that every gene and word appears in the dump."""
        pool = GenePool([3], [1], capacity=2, word_config=WordConfig(8))
        text = pool.to_text()
        assert text.count('Gene ') == 2
        assert text.count('fitness: 0') == 2
