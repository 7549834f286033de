"""OneMax: fitness is the number of set bits in a gene."""

from ..evolutionary.gene_pool import GenePool
from .base import FitnessEvaluator


class OneMaxEvaluator(FitnessEvaluator):
    """Bit-counting benchmark; the all-ones gene scores ``gene_length``."""
    
    def __init__(self, pool: GenePool):
        self.pool = pool
    
    @property
    def perfect_score(self) -> int:
        return self.pool.gene_length
    
    def fitness(self, gene_id: int) -> int:
        return self.pool[gene_id].bits.count_ones()
