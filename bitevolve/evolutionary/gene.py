"""Gene: a bit-packed genome plus its fitness score."""

from dataclasses import dataclass
from typing import Union

from .bit_vector import DEFAULT_WORD_CONFIG, BitVector, WordConfig


@dataclass(eq=False)
class Gene:
    """
    One candidate solution.

    Attributes:
        bits: The genome, exclusively owned by this gene
        fitness: Score from the most recent fitness pass (stale after reproduction)
    """
    bits: BitVector
    fitness: int = 0

    @classmethod
    def zeros(cls, size: int, word_config: WordConfig = DEFAULT_WORD_CONFIG) -> 'Gene':
        return cls(BitVector(size, word_config))

    @property
    def size(self) -> int:
        return self.bits.size

    def copy_from(self, other: Union['Gene', BitVector]) -> None:
        """
        Copy the bits of ``other`` into this gene.

        Fitness is not carried over; callers that need it copy it explicitly.
        """
        source = other.bits if isinstance(other, Gene) else other
        self.bits.copy_from(source)

    def clone(self) -> 'Gene':
        """Independent copy with bits and fitness."""
        return Gene(self.bits.copy(), self.fitness)

    def to_text(self) -> str:
        return f"{self.bits.to_text()}\n  fitness: {self.fitness}"
