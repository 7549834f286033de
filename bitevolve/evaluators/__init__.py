"""
Fitness evaluators for bitevolve.

Evaluators plug into ``GenePool.fitness``; they are looked up by name from
configuration files through ``create_evaluator``.
"""

from typing import Any, Dict, Optional

from ..evolutionary.gene_pool import GenePool
from .base import FitnessEvaluator
from .blackjack import BlackjackEvaluator, Card, Deck, Hand
from .onemax import OneMaxEvaluator

EVALUATORS = {
    'onemax': OneMaxEvaluator,
    'blackjack': BlackjackEvaluator,
}


def create_evaluator(
    name: str,
    pool: GenePool,
    options: Optional[Dict[str, Any]] = None
) -> FitnessEvaluator:
    """
    Build a registered evaluator for a gene pool.
    
    Args:
        name: Registry key ('onemax' or 'blackjack')
        pool: Gene pool the evaluator scores
        options: Keyword arguments for the evaluator constructor
    
    Raises:
        ValueError: If the name is not registered
    """
    try:
        evaluator_cls = EVALUATORS[name.lower()]
    except KeyError:
        raise ValueError(
            f"Unknown evaluator '{name}'. Options: {sorted(EVALUATORS)}"
        ) from None
    return evaluator_cls(pool, **(options or {}))


__all__ = [
    'FitnessEvaluator',
    'OneMaxEvaluator',
    'BlackjackEvaluator',
    'Card',
    'Deck',
    'Hand',
    'EVALUATORS',
    'create_evaluator',
]
