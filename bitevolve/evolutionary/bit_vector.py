"""
Bit-packed storage for fixed-length genomes.

Bits are packed low-to-high into fixed-width unsigned words: bit ``i`` lives in
word ``i // word_bits`` at position ``i % word_bits``. The word width and the
per-position masks are an immutable ``WordConfig`` passed to every vector.
"""

from dataclasses import dataclass, field
from typing import Iterator, Tuple

import numpy as np

from .exceptions import BitIndexError, InvalidRangeError, SizeMismatchError

_WORD_DTYPES = {
    8: np.uint8,
    16: np.uint16,
    32: np.uint32,
    64: np.uint64,
}


@dataclass(frozen=True)
class WordConfig:
    """
    Machine word layout shared by every BitVector of a pool.

    Attributes:
        word_bits: Width of one storage word (8, 16, 32 or 64)
        bit_masks: ``1 << i`` for every position in a word, computed once
        word_max: ``2 ** word_bits``
        all_ones: Word value with every bit set
    """
    word_bits: int = 64
    bit_masks: Tuple[int, ...] = field(init=False, repr=False)
    word_max: int = field(init=False, repr=False)
    all_ones: int = field(init=False, repr=False)

    def __post_init__(self):
        if self.word_bits not in _WORD_DTYPES:
            raise ValueError(
                f"Unsupported word width {self.word_bits}; "
                f"expected one of {sorted(_WORD_DTYPES)}"
            )
        object.__setattr__(self, 'bit_masks', tuple(1 << i for i in range(self.word_bits)))
        object.__setattr__(self, 'word_max', 2 ** self.word_bits)
        object.__setattr__(self, 'all_ones', 2 ** self.word_bits - 1)

    @property
    def dtype(self):
        """numpy dtype used for word storage."""
        return _WORD_DTYPES[self.word_bits]

    def words_for(self, size: int) -> int:
        """Number of words needed for ``size`` bits (never less than one)."""
        return max(1, -(-size // self.word_bits))


DEFAULT_WORD_CONFIG = WordConfig()


class BitVector:
    """
    Fixed-size sequence of bits packed into machine words.

    Single bits can be addressed anywhere in ``[0, size)``. Multi-bit ranges
    (``get_range`` / ``set_range``) must stay inside the word that holds their
    first bit, i.e. ``index % word_bits + num_bits <= word_bits``.
    """

    def __init__(self, size: int, word_config: WordConfig = DEFAULT_WORD_CONFIG):
        """
        Allocate a zeroed vector.

        Args:
            size: Number of bits (immutable)
            word_config: Word layout to pack the bits with
        """
        if size < 0:
            raise ValueError(f"Bit vector size must be non-negative, got {size}")
        self._size = int(size)
        self._config = word_config
        self._words = np.zeros(word_config.words_for(self._size), dtype=word_config.dtype)

    # Derived queries

    @property
    def size(self) -> int:
        return self._size

    @property
    def word_config(self) -> WordConfig:
        return self._config

    @property
    def word_bits(self) -> int:
        return self._config.word_bits

    @property
    def word_max(self) -> int:
        return self._config.word_max

    @property
    def num_words(self) -> int:
        return len(self._words)

    # Single-bit access

    def _locate(self, index: int) -> Tuple[int, int]:
        if not 0 <= index < self._size:
            raise BitIndexError(index, self._size)
        return divmod(index, self._config.word_bits)

    def get_bit(self, index: int) -> int:
        word, pos = self._locate(index)
        return 1 if int(self._words[word]) & self._config.bit_masks[pos] else 0

    def set_bit(self, index: int, value: int) -> None:
        word, pos = self._locate(index)
        current = int(self._words[word])
        if value:
            self._words[word] = current | self._config.bit_masks[pos]
        else:
            self._words[word] = current & (self._config.bit_masks[pos] ^ self._config.all_ones)

    def flip_bit(self, index: int) -> None:
        """Complement the bit at ``index`` in place."""
        word, pos = self._locate(index)
        self._words[word] = int(self._words[word]) ^ self._config.bit_masks[pos]

    def __getitem__(self, index: int) -> int:
        return self.get_bit(index)

    def __setitem__(self, index: int, value: int) -> None:
        self.set_bit(index, value)

    # Same-word ranges

    def _range_mask(self, index: int, num_bits: int) -> Tuple[int, int, int]:
        word, pos = self._locate(index)
        if num_bits < 0:
            raise InvalidRangeError(f"Range width must be non-negative, got {num_bits}")
        if pos + num_bits > self._config.word_bits:
            raise InvalidRangeError(
                f"Range of {num_bits} bits at index {index} crosses a "
                f"{self._config.word_bits}-bit word boundary"
            )
        if index + num_bits > self._size:
            raise InvalidRangeError(
                f"Range of {num_bits} bits at index {index} runs past the "
                f"end of a {self._size}-bit vector"
            )
        mask = ((1 << num_bits) - 1) << pos
        return word, pos, mask

    def get_range(self, index: int, num_bits: int) -> int:
        """
        Read ``num_bits`` contiguous bits starting at ``index`` as an integer.

        Bit ``index`` becomes the least significant bit of the result.

        Raises:
            BitIndexError: If ``index`` is outside the vector
            InvalidRangeError: If the range leaves the word holding ``index``
        """
        word, pos, mask = self._range_mask(index, num_bits)
        return (int(self._words[word]) & mask) >> pos

    def set_range(self, index: int, num_bits: int, value: int) -> None:
        """
        Write ``value mod 2**num_bits`` into ``num_bits`` bits starting at ``index``.

        Raises:
            BitIndexError: If ``index`` is outside the vector
            InvalidRangeError: If the range leaves the word holding ``index``
        """
        word, pos, mask = self._range_mask(index, num_bits)
        value = (int(value) & ((1 << num_bits) - 1)) << pos
        cleared = int(self._words[word]) & (mask ^ self._config.all_ones)
        self._words[word] = cleared | value

    # Whole words

    def get_word(self, word: int) -> int:
        return int(self._words[word])

    def set_word(self, word: int, value: int) -> None:
        if not 0 <= value < self._config.word_max:
            raise ValueError(f"Word value {value} does not fit in {self.word_bits} bits")
        self._words[word] = value

    def copy_from(self, other: 'BitVector') -> None:
        """Replace every word with the words of ``other``."""
        if other.size != self._size or other.word_bits != self.word_bits:
            raise SizeMismatchError(
                f"Cannot copy a {other.size}-bit vector into a {self._size}-bit vector"
            )
        np.copyto(self._words, other._words)

    def copy(self) -> 'BitVector':
        duplicate = BitVector(self._size, self._config)
        duplicate.copy_from(self)
        return duplicate

    # Iteration and diagnostics

    def __len__(self) -> int:
        return self._size

    def __iter__(self) -> Iterator[int]:
        for index in range(self._size):
            yield self.get_bit(index)

    def indices(self) -> Iterator[int]:
        return iter(range(self._size))

    def count_ones(self) -> int:
        """Number of set bits among the ``size`` logical bits."""
        # the last word may carry padding bits beyond size
        limit = self._size - (self.num_words - 1) * self._config.word_bits
        total = sum(bin(int(word)).count('1') for word in self._words[:-1])
        return total + bin(int(self._words[-1]) & ((1 << limit) - 1)).count('1')

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BitVector):
            return NotImplemented
        return self._size == other._size and np.array_equal(self._words, other._words)

    def __repr__(self) -> str:
        return f"BitVector(size={self._size}, word_bits={self.word_bits})"

    def to_text(self) -> str:
        """One zero-padded binary line per storage word, word 0 first."""
        width = self._config.word_bits
        return '\n'.join(f"  {int(word):0{width}b}" for word in self._words)
