"""
Base evaluator module for bitevolve.

A fitness evaluator scores one gene of a GenePool. The pool calls it exactly
once per gene per generation and keeps the returned integer as that gene's
fitness.
"""

from abc import ABC, abstractmethod


class FitnessEvaluator(ABC):
    """
    Abstract base class for fitness evaluators.
    
    Subclasses usually hold a reference to the GenePool they score and read
    genes through its lookup-table decode (``GenePool.result``) or bit access.
    
    Example:
        >>> class ZeroEvaluator(FitnessEvaluator):
        ...     def fitness(self, gene_id: int) -> int:
        ...         return 0
    """
    
    @abstractmethod
    def fitness(self, gene_id: int) -> int:
        """
        Score one gene.
        
        Args:
            gene_id: Position of the gene in the pool
        
        Returns:
            Non-negative integer fitness
        """
