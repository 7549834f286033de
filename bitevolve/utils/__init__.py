"""
Utilities module for bitevolve.

Logging setup, structured per-generation records and plotting helpers.
"""

from .logging import setup_logging, EvolutionLogger, GenerationLog, get_logger
from .visualization import plot_fitness_vs_generation, plot_gene_bitmap

__all__ = [
    # Logging
    'setup_logging',
    'EvolutionLogger',
    'GenerationLog',
    'get_logger',
    
    # Visualization
    'plot_fitness_vs_generation',
    'plot_gene_bitmap',
]
