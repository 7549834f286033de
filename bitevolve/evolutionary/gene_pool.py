"""
GenePool: a population of bit-packed lookup-table genomes.

Every gene encodes a complete decision table. The input state is a tuple of
small unsigned fields (``in_field_widths``) that is packed into one table
index; each table entry holds ``O = sum(out_field_widths)`` bits, so a gene is
``2 ** sum(in_field_widths) * O`` bits long.

The pool owns the genetic operators (single-point crossover, per-bit
mutation, roulette selection with elitism and the reproduction pipeline)
and the one random generator they all draw from.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Iterator, List, Sequence, Tuple, Union

import numpy as np

from .bit_vector import DEFAULT_WORD_CONFIG, BitVector, WordConfig
from .exceptions import FieldOverflowError, SizeMismatchError
from .gene import Gene
from .selection import best_of, roulette_shares, validate_rate

if TYPE_CHECKING:
    from ..evaluators.base import FitnessEvaluator

logger = logging.getLogger(__name__)

Genome = Union[Gene, BitVector]
RandomSource = Union[np.random.Generator, int, None]


def _bits(genome: Genome) -> BitVector:
    return genome.bits if isinstance(genome, Gene) else genome


def _check_widths(name: str, widths: Sequence[int]) -> Tuple[int, ...]:
    widths = tuple(int(w) for w in widths)
    if not widths:
        raise ValueError(f"{name} must contain at least one field")
    if any(w <= 0 for w in widths):
        raise ValueError(f"{name} must be positive bit widths, got {list(widths)}")
    return widths


class GenePool:
    """
    Ordered, fixed-shape collection of genes.
    
    Gene ids are positions in insertion order. The mating pool used during
    selection is another GenePool of the same shape (see ``GenePool.like``).
    """
    
    def __init__(
        self,
        in_field_widths: Sequence[int],
        out_field_widths: Sequence[int],
        capacity: int = 0,
        randomize: bool = False,
        rng: RandomSource = None,
        word_config: WordConfig = DEFAULT_WORD_CONFIG
    ):
        """
        Initialize the gene pool.
        
        Args:
            in_field_widths: Bit width of every input dimension, low field first
            out_field_widths: Bit width of every output field
            capacity: Number of genes to allocate
            randomize: Fill every word of every gene with a random value
            rng: numpy Generator, integer seed, or None for a fresh generator
            word_config: Word layout of the gene storage
        """
        if capacity < 0:
            raise ValueError(f"Capacity must be non-negative, got {capacity}")
        
        self.in_field_widths = _check_widths('in_field_widths', in_field_widths)
        self.out_field_widths = _check_widths('out_field_widths', out_field_widths)
        self.in_bits = sum(self.in_field_widths)
        self.out_bits = sum(self.out_field_widths)
        self.gene_length = 2 ** self.in_bits * self.out_bits
        self.word_config = word_config
        self.rng = np.random.default_rng(rng)
        
        self.best_id = 0
        self.best_fitness = 0
        self._genes: List[Gene] = []
        
        for _ in range(capacity):
            gene = Gene.zeros(self.gene_length, word_config)
            if randomize:
                words = self.rng.integers(
                    0, word_config.all_ones, size=gene.bits.num_words,
                    dtype=word_config.dtype, endpoint=True
                )
                for w, value in enumerate(words):
                    gene.bits.set_word(w, int(value))
            self._genes.append(gene)
        
        logger.debug(f"Initialized GenePool: {capacity} genes of {self.gene_length} bits, "
                     f"in={list(self.in_field_widths)} out={list(self.out_field_widths)}")
    
    @classmethod
    def like(cls, pool: 'GenePool', capacity: int = 0, randomize: bool = False) -> 'GenePool':
        """Create a pool with the same shape, word layout and generator as ``pool``."""
        return cls(
            pool.in_field_widths,
            pool.out_field_widths,
            capacity=capacity,
            randomize=randomize,
            rng=pool.rng,
            word_config=pool.word_config
        )
    
    # Collection protocol
    
    @property
    def capacity(self) -> int:
        return len(self._genes)
    
    def __len__(self) -> int:
        return len(self._genes)
    
    def __getitem__(self, gene_id: int) -> Gene:
        return self._genes[gene_id]
    
    def __iter__(self) -> Iterator[Gene]:
        return iter(self._genes)
    
    def gene_ids(self) -> Iterator[int]:
        return iter(range(len(self._genes)))
    
    def add(self, gene: Gene) -> None:
        """Append a copy of ``gene`` (bits and fitness)."""
        if gene.size != self.gene_length:
            raise SizeMismatchError(
                f"Cannot add a {gene.size}-bit gene to a pool of {self.gene_length}-bit genes"
            )
        copy = Gene.zeros(self.gene_length, self.word_config)
        copy.copy_from(gene)
        copy.fitness = gene.fitness
        self._genes.append(copy)
    
    def clear(self) -> None:
        """Remove every gene; capacity becomes zero and the best gene is reset."""
        self._genes.clear()
        self.best_id = 0
        self.best_fitness = 0
    
    # Bit access by gene id
    
    def get(self, gene_id: int, index: int) -> int:
        return self._genes[gene_id].bits.get_bit(index)
    
    def set(self, gene_id: int, index: int, value: int) -> None:
        self._genes[gene_id].bits.set_bit(index, value)
    
    def get_mult(self, gene_id: int, index: int, num_bits: int) -> int:
        return self._genes[gene_id].bits.get_range(index, num_bits)
    
    def set_mult(self, gene_id: int, index: int, num_bits: int, value: int) -> None:
        self._genes[gene_id].bits.set_range(index, num_bits, value)
    
    # Lookup-table addressing
    
    def calc_index(self, input_values: Sequence[int]) -> int:
        """
        Pack an input tuple into a table index, first field lowest.
        
        Formula: index = sum(v_i << sum(w_j for j < i))
        
        No width check is done: a value wider than its field spills into the
        next field. Use ``calc_index_checked`` for untrusted input.
        """
        index = 0
        shift = 0
        for value, width in zip(input_values, self.in_field_widths):
            index += int(value) << shift
            shift += width
        return index
    
    def calc_index_checked(self, input_values: Sequence[int]) -> int:
        """
        Bounds-checked ``calc_index``.
        
        Raises:
            FieldOverflowError: If the tuple has the wrong length or a value
                does not fit in its field
        """
        if len(input_values) != len(self.in_field_widths):
            raise FieldOverflowError(
                f"Expected {len(self.in_field_widths)} input values, got {len(input_values)}"
            )
        for i, (value, width) in enumerate(zip(input_values, self.in_field_widths)):
            if not 0 <= value < 2 ** width:
                raise FieldOverflowError(
                    f"Input field {i} value {value} does not fit in {width} bits"
                )
        return self.calc_index(input_values)
    
    def _read_entry(self, bits: BitVector, offset: int, width: int) -> int:
        # An entry may straddle words when out_bits does not divide word_bits
        value = 0
        shift = 0
        while width > 0:
            take = min(width, bits.word_bits - offset % bits.word_bits)
            value |= bits.get_range(offset, take) << shift
            offset += take
            shift += take
            width -= take
        return value
    
    def _write_entry(self, bits: BitVector, offset: int, width: int, value: int) -> None:
        while width > 0:
            take = min(width, bits.word_bits - offset % bits.word_bits)
            bits.set_range(offset, take, value)
            value >>= take
            offset += take
            width -= take
    
    def result(self, gene_id: int, input_values: Sequence[int]) -> int:
        """
        Decode a gene as a decision table: read ``out_bits`` bits at bit
        offset ``calc_index(input_values)``.

        With more than one output bit, neighbouring input states share bits;
        use ``table_entry`` for non-overlapping entries.

        Raises:
            InvalidRangeError: If the entry crosses a word boundary
        """
        index = self.calc_index(input_values)
        return self._genes[gene_id].bits.get_range(index, self.out_bits)

    def set_result(self, gene_id: int, input_values: Sequence[int], value: int) -> None:
        """Write the ``out_bits`` bits that ``result`` reads for an input tuple."""
        index = self.calc_index(input_values)
        self._genes[gene_id].bits.set_range(index, self.out_bits, value)

    def result_fields(self, gene_id: int, input_values: Sequence[int]) -> Tuple[int, ...]:
        """Split ``result`` into its declared output fields, first field lowest."""
        return self._split_fields(self.result(gene_id, input_values))

    def table_entry(self, gene_id: int, input_values: Sequence[int]) -> int:
        """
        Read the non-overlapping entry of an input tuple, at bit offset
        ``calc_index(input_values) * out_bits``.

        Entries may straddle a word boundary. Same as ``result`` for one
        output bit.
        """
        offset = self.calc_index(input_values) * self.out_bits
        return self._read_entry(self._genes[gene_id].bits, offset, self.out_bits)

    def set_table_entry(self, gene_id: int, input_values: Sequence[int], value: int) -> None:
        """Overwrite the entry ``table_entry`` reads for an input tuple."""
        offset = self.calc_index(input_values) * self.out_bits
        self._write_entry(self._genes[gene_id].bits, offset, self.out_bits, value)

    def _split_fields(self, entry: int) -> Tuple[int, ...]:
        fields = []
        for width in self.out_field_widths:
            fields.append(entry & ((1 << width) - 1))
            entry >>= width
        return tuple(fields)
    
    # Genetic operators
    
    def crossover(self, gene_a: Genome, gene_b: Genome, point: int) -> None:
        """
        Exchange the low ``point`` bits of two genomes in place.
        
        Whole words below ``point // word_bits`` are swapped, then the low
        ``point % word_bits`` bits of the boundary word. Bits at and above
        ``point`` stay where they are, so applying the same crossover twice
        restores both genomes.
        
        Raises:
            SizeMismatchError: If the genomes differ in length
            ValueError: If ``point`` is outside [0, length]
        """
        a, b = _bits(gene_a), _bits(gene_b)
        if a.size != b.size or a.word_bits != b.word_bits:
            raise SizeMismatchError(
                f"Cannot cross a {a.size}-bit genome with a {b.size}-bit genome"
            )
        if not 0 <= point <= a.size:
            raise ValueError(f"Crossover point {point} outside [0, {a.size}]")
        
        whole_words, num_bits = divmod(point, a.word_bits)
        for w in range(whole_words):
            word_a = a.get_word(w)
            a.set_word(w, b.get_word(w))
            b.set_word(w, word_a)
        
        if num_bits:
            start = whole_words * a.word_bits
            low_a = a.get_range(start, num_bits)
            a.set_range(start, num_bits, b.get_range(start, num_bits))
            b.set_range(start, num_bits, low_a)
    
    def cross(self, gene_a_id: int, gene_b_id: int, point: int) -> None:
        """``crossover`` between two genes addressed by id."""
        self.crossover(self._genes[gene_a_id], self._genes[gene_b_id], point)
    
    def mutate(self, gene: Genome, rate: float) -> int:
        """
        Flip every bit independently with probability ``rate``.
        
        Returns:
            Number of bits flipped
        """
        rate = validate_rate('mutation_rate', rate)
        bits = _bits(gene)
        draws = self.rng.random(bits.size)
        flipped = np.flatnonzero(draws < rate)
        for index in flipped:
            bits.flip_bit(int(index))
        return len(flipped)
    
    # Generation pipeline
    
    def fitness(self, evaluator: 'FitnessEvaluator', workers: int = 1) -> int:
        """
        Score every gene once and record the best one.
        
        Args:
            evaluator: Object with ``fitness(gene_id) -> int``
            workers: Thread count; scores are reduced the same way for any value
        
        Returns:
            Total fitness of the population
        
        Raises:
            ValueError: If the evaluator returns a negative or non-integer score
        """
        def score(gene_id: int) -> int:
            value = evaluator.fitness(gene_id)
            if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
                raise ValueError(f"Fitness of gene {gene_id} must be an integer, got {value!r}")
            if value < 0:
                raise ValueError(f"Fitness of gene {gene_id} must be non-negative, got {value}")
            return int(value)
        
        ids = list(self.gene_ids())
        if workers > 1 and len(ids) > 1:
            with ThreadPoolExecutor(max_workers=workers) as executor:
                scores = list(executor.map(score, ids))
        else:
            scores = [score(gene_id) for gene_id in ids]
        
        for gene, value in zip(self._genes, scores):
            gene.fitness = value
        self.best_id, self.best_fitness = best_of(zip(ids, scores))
        total = sum(scores)
        
        logger.debug(f"Fitness pass: total={total}, best gene {self.best_id} "
                     f"(fitness={self.best_fitness})")
        return total
    
    def average_fitness(self) -> float:
        if not self._genes:
            return 0.0
        return sum(g.fitness for g in self._genes) / len(self._genes)
    
    def selection(self, mating_pool: 'GenePool', total_fitness: int) -> None:
        """
        Fill ``mating_pool`` by roulette-wheel selection.
        
        Entry 0 is always a copy of the current best gene. Each gene then gets
        ``floor(fitness / total_fitness * population_size)`` copies; remainders
        are dropped, so the mating pool is usually smaller than the population
        plus one. With zero total fitness only the elite copy is added.
        """
        mating_pool.clear()
        if not self._genes:
            return
        mating_pool.add(self._genes[self.best_id])
        
        shares = roulette_shares([g.fitness for g in self._genes], total_fitness, len(self._genes))
        for gene, share in zip(self._genes, shares):
            for _ in range(share):
                mating_pool.add(gene)
        
        logger.debug(f"Selection: mating pool holds {len(mating_pool)} genes")
    
    def reproduction(self, mating_pool: 'GenePool', mutation_rate: float,
                     crossover_rate: float) -> None:
        """
        Replace every gene with a child bred from the mating pool.
        
        For each slot: draw mom and dad uniformly (with replacement), copy mom,
        cross with dad at a random point with probability ``crossover_rate``,
        mutate, store. Slot 0 is then overwritten with the elite (mating pool
        entry 0), bits and fitness. Other fitness values are left stale.
        """
        if not len(mating_pool):
            raise ValueError("Cannot reproduce from an empty mating pool")
        mutation_rate = validate_rate('mutation_rate', mutation_rate)
        crossover_rate = validate_rate('crossover_rate', crossover_rate)
        if mating_pool.gene_length != self.gene_length:
            raise SizeMismatchError(
                f"Mating pool genes are {mating_pool.gene_length} bits, "
                f"population genes are {self.gene_length} bits"
            )
        if not self._genes:
            return
        
        mom = Gene.zeros(self.gene_length, self.word_config)
        dad = Gene.zeros(self.gene_length, self.word_config)
        crossings = 0
        
        for gene in self._genes:
            m = int(self.rng.integers(len(mating_pool)))
            d = int(self.rng.integers(len(mating_pool)))
            mom.copy_from(mating_pool[m])
            if self.rng.random() < crossover_rate:
                dad.copy_from(mating_pool[d])
                point = int(self.rng.integers(self.gene_length))
                self.crossover(mom, dad, point)
                crossings += 1
            self.mutate(mom, mutation_rate)
            gene.copy_from(mom)
        
        elite = mating_pool[0]
        self._genes[0].copy_from(elite)
        self._genes[0].fitness = elite.fitness
        
        logger.debug(f"Reproduction: {len(self._genes)} children, {crossings} crossovers")
    
    def to_text(self) -> str:
        """Human-readable dump of every gene."""
        return '\n'.join(f"Gene {i}:\n{gene.to_text()}" for i, gene in enumerate(self._genes))
