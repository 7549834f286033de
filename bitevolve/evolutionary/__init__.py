"""
Evolutionary core of bitevolve.

Bit-packed genome storage, the gene pool with its genetic operators, the
selection helpers and the generation driver.
"""

from .exceptions import BitIndexError, InvalidRangeError, SizeMismatchError, FieldOverflowError
from .bit_vector import BitVector, WordConfig, DEFAULT_WORD_CONFIG
from .gene import Gene
from .gene_pool import GenePool
from .selection import roulette_shares, best_of, validate_rate

__all__ = [
    # Errors
    'BitIndexError',
    'InvalidRangeError',
    'SizeMismatchError',
    'FieldOverflowError',
    
    # Storage
    'BitVector',
    'WordConfig',
    'DEFAULT_WORD_CONFIG',
    'Gene',
    
    # Population
    'GenePool',
    
    # Selection
    'roulette_shares',
    'best_of',
    'validate_rate',
]
