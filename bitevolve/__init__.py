"""
bitevolve: Genetic Algorithm over Bit-Packed Lookup-Table Policies

Each genome is a complete decision table: every discretized input state maps
to an output value through a direct, mixed-radix indexed lookup into a
bit-packed gene. Populations evolve with roulette-wheel selection, elitism,
single-point crossover and per-bit mutation.

Main Components:
- evolutionary: BitVector storage, Gene, GenePool operators, generation driver
- evaluators: Fitness evaluator interface plus OneMax and Blackjack evaluators
- utils: Logging and visualization utilities

Usage:
    from bitevolve.evolutionary.gene_pool import GenePool
    from bitevolve.evolutionary.algorithm import run_evolution
"""

__version__ = "1.0.0"

__all__ = [
    "evolutionary",
    "evaluators",
    "utils",
]
