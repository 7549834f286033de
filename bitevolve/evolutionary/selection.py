"""
Selection mechanisms for the bitevolve genetic algorithm.

This module implements:
- Roulette-wheel shares: each gene's number of copies in the mating pool
- Deterministic best-gene reduction over (gene id, fitness) pairs
- Range checks for the mutation and crossover rates
"""

from typing import Iterable, List, Sequence, Tuple
from logging import getLogger

logger = getLogger(__name__)


def validate_rate(name: str, value: float) -> float:
    """
    Check that a probability lies in [0, 1].
    
    Args:
        name: Parameter name used in the error message
        value: Probability to check
    
    Returns:
        The value as a float
    
    Raises:
        ValueError: If the value is outside [0, 1]
    """
    rate = float(value)
    if not 0.0 <= rate <= 1.0:
        raise ValueError(f"{name} must be between 0.0 and 1.0, got {value}")
    return rate


def roulette_shares(
    fitnesses: Sequence[int],
    total_fitness: int,
    population_size: int
) -> List[int]:
    """
    Compute how many mating-pool copies each gene receives.
    
    Formula: share_i = floor(f_i / F * N), where F is the total fitness and
    N the population size. Fractional remainders are dropped, so the shares
    usually sum to less than N.
    
    Args:
        fitnesses: Fitness of every gene, in population order
        total_fitness: Sum of all fitnesses for the generation
        population_size: Number of genes in the population
    
    Returns:
        List of non-negative copy counts, one per gene
    """
    if total_fitness <= 0:
        logger.warning("Total fitness is zero, mating pool will only hold the elite")
        return [0] * len(fitnesses)
    
    # Integer floor division keeps the truncation exact for any fitness scale
    return [(int(f) * population_size) // int(total_fitness) for f in fitnesses]


def best_of(scores: Iterable[Tuple[int, int]]) -> Tuple[int, int]:
    """
    Pick the best (gene id, fitness) pair.
    
    Strictly greater fitness wins, so ties keep the earliest id. The result
    does not depend on the order the pairs arrive in.
    
    Args:
        scores: Iterable of (gene_id, fitness) pairs
    
    Returns:
        (best_id, best_fitness); (0, 0) when there are no scores
    """
    best_id, best_fitness = 0, 0
    seen = False
    for gene_id, fitness in scores:
        if (not seen
                or fitness > best_fitness
                or (fitness == best_fitness and gene_id < best_id)):
            best_id, best_fitness = gene_id, fitness
            seen = True
    return best_id, best_fitness
