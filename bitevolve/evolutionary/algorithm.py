"""
bitevolve: main generation loop.

Each generation runs the three GenePool phases in strict order:

1. fitness   - score every gene with the evaluator
2. selection - build the mating pool (elite first, then roulette shares)
3. reproduction - breed the next population from the mating pool

Author: bitevolve developers
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from .bit_vector import WordConfig
from .gene import Gene
from .gene_pool import GenePool
from .selection import validate_rate
from ..evaluators import FitnessEvaluator, create_evaluator
from ..utils.logging import EvolutionLogger, GenerationLog

logger = logging.getLogger(__name__)


@dataclass
class EvolutionConfig:
    """
    Parameters of one genetic algorithm run.
    
    Attributes:
        in_fields: Bit width of every input field of the lookup table
        out_fields: Bit width of every output field
        population_size: Number of genes
        generations: Maximum number of generations
        mutation_rate: Per-bit flip probability
        crossover_rate: Probability that a child is crossed with a second parent
        seed: Seed of the run's random generator (None = unseeded)
        evaluator: Registered evaluator name
        evaluator_options: Keyword arguments for the evaluator
        target_fitness: Stop once the best fitness reaches this value
        workers: Threads used for the fitness pass
        head_start: Number of genes seeded with the evaluator's baseline policy
        word_bits: Storage word width
    """
    in_fields: List[int] = field(default_factory=lambda: [8])
    out_fields: List[int] = field(default_factory=lambda: [1])
    population_size: int = 300
    generations: int = 200
    mutation_rate: float = 0.005
    crossover_rate: float = 0.9
    seed: Optional[int] = None
    evaluator: str = 'onemax'
    evaluator_options: Dict[str, Any] = field(default_factory=dict)
    target_fitness: Optional[int] = None
    workers: int = 1
    head_start: int = 0
    word_bits: int = 64
    
    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> 'EvolutionConfig':
        """
        Build a config from the nested YAML layout.
        
        Args:
            config: Dictionary with 'evolution', 'genome' and 'evaluator' sections
        """
        evolution = config.get('evolution', {}) or {}
        genome = config.get('genome', {}) or {}
        evaluator = config.get('evaluator', {}) or {}
        defaults = cls()
        
        return cls(
            in_fields=list(genome.get('in_fields', defaults.in_fields)),
            out_fields=list(genome.get('out_fields', defaults.out_fields)),
            population_size=int(evolution.get('population_size', defaults.population_size)),
            generations=int(evolution.get('generations', defaults.generations)),
            mutation_rate=float(evolution.get('mutation_rate', defaults.mutation_rate)),
            crossover_rate=float(evolution.get('crossover_rate', defaults.crossover_rate)),
            seed=evolution.get('seed', defaults.seed),
            evaluator=str(evaluator.get('name', defaults.evaluator)),
            evaluator_options=dict(evaluator.get('options', {}) or {}),
            target_fitness=evolution.get('target_fitness', defaults.target_fitness),
            workers=int(evolution.get('workers', defaults.workers)),
            head_start=int(evaluator.get('head_start', defaults.head_start)),
            word_bits=int(genome.get('word_bits', defaults.word_bits)),
        )
    
    def validate(self) -> None:
        """
        Raises:
            ValueError: If any parameter is out of range
        """
        if self.population_size < 1:
            raise ValueError(f"population_size must be at least 1, got {self.population_size}")
        if self.generations < 0:
            raise ValueError(f"generations must be non-negative, got {self.generations}")
        if self.workers < 1:
            raise ValueError(f"workers must be at least 1, got {self.workers}")
        validate_rate('mutation_rate', self.mutation_rate)
        validate_rate('crossover_rate', self.crossover_rate)
        if not self.in_fields or any(w <= 0 for w in self.in_fields):
            raise ValueError(f"in_fields must be positive widths, got {self.in_fields}")
        if not self.out_fields or any(w <= 0 for w in self.out_fields):
            raise ValueError(f"out_fields must be positive widths, got {self.out_fields}")


class GeneticAlgorithm:
    """
    Generation driver around a GenePool and its mating pool.
    
    Attributes:
        config: EvolutionConfig of the run
        gene_pool: The evolving population (randomized at start)
        mating_pool: Transient pool refilled by every selection
        evaluator: Fitness evaluator bound to gene_pool
        history: One record per completed generation
    """
    
    def __init__(
        self,
        config: EvolutionConfig,
        evaluator: Optional[FitnessEvaluator] = None,
        evolution_logger: Optional[EvolutionLogger] = None
    ):
        """
        Args:
            config: Run parameters
            evaluator: Evaluator bound to the new gene pool; when None one is
                created from ``config.evaluator``
            evolution_logger: Optional structured per-generation logger
        """
        config.validate()
        self.config = config
        self.rng = np.random.default_rng(config.seed)
        self.gene_pool = GenePool(
            config.in_fields,
            config.out_fields,
            capacity=config.population_size,
            randomize=True,
            rng=self.rng,
            word_config=WordConfig(config.word_bits)
        )
        self.mating_pool = GenePool.like(self.gene_pool)
        self.evaluator = evaluator or create_evaluator(
            config.evaluator, self.gene_pool, config.evaluator_options
        )
        self.evolution_logger = evolution_logger
        self.history: List[Dict[str, Any]] = []
        self._best_gene: Optional[Gene] = None
        
        if config.head_start:
            seed_policy = getattr(self.evaluator, 'head_start', None)
            if seed_policy is None:
                logger.warning(f"Evaluator '{config.evaluator}' has no baseline policy; "
                               f"ignoring head_start")
            else:
                seed_policy(config.head_start)
        
        logger.info(f"Initialized GeneticAlgorithm: {config.population_size} genes of "
                    f"{self.gene_pool.gene_length} bits, evaluator={config.evaluator}")
    
    def step(self, generation: int) -> Dict[str, Any]:
        """
        Run one generation: fitness, selection, reproduction.
        
        Returns:
            Record of the generation's fitness statistics
        """
        pool = self.gene_pool
        total_fitness = pool.fitness(self.evaluator, workers=self.config.workers)
        self._best_gene = pool[pool.best_id].clone()
        
        record = {
            'generation': generation,
            'total_fitness': total_fitness,
            'average_fitness': total_fitness / len(pool),
            'best_fitness': pool.best_fitness,
            'best_id': pool.best_id,
        }
        
        pool.selection(self.mating_pool, total_fitness)
        record['mating_pool_size'] = len(self.mating_pool)
        pool.reproduction(self.mating_pool, self.config.mutation_rate, self.config.crossover_rate)
        
        self.history.append(record)
        if self.evolution_logger is not None:
            self.evolution_logger.log_generation(GenerationLog(**record))
        return record
    
    def target_reached(self) -> bool:
        target = self.config.target_fitness
        if target is None or self._best_gene is None:
            return False
        return self._best_gene.fitness >= target
    
    def run(self) -> List[Dict[str, Any]]:
        """
        Run up to ``config.generations`` generations.
        
        Stops early once ``target_fitness`` is reached; that generation is
        still recorded.
        
        Returns:
            The generation history
        """
        if self.evolution_logger is not None:
            self.evolution_logger.log_run_start(
                len(self.gene_pool), self.gene_pool.gene_length, self.config.generations
            )
        
        for generation in range(self.config.generations):
            self.step(generation)
            if self.target_reached():
                logger.info(f"Target fitness {self.config.target_fitness} reached at "
                            f"generation {generation}")
                break
        
        return self.history
    
    def best_gene(self) -> Optional[Gene]:
        """Best gene of the last evaluated generation (bits and fitness)."""
        return self._best_gene.clone() if self._best_gene is not None else None
    
    def history_frame(self) -> pd.DataFrame:
        """Generation history as a DataFrame indexed by generation."""
        frame = pd.DataFrame(self.history, columns=[
            'generation', 'total_fitness', 'average_fitness',
            'best_fitness', 'best_id', 'mating_pool_size',
        ])
        return frame.set_index('generation')


def create_algorithm_from_config(
    config: Dict[str, Any],
    evolution_logger: Optional[EvolutionLogger] = None
) -> GeneticAlgorithm:
    """
    Create a GeneticAlgorithm from a nested configuration dictionary.
    
    Args:
        config: Configuration with 'evolution', 'genome' and 'evaluator' sections
        evolution_logger: Optional structured per-generation logger
    """
    return GeneticAlgorithm(EvolutionConfig.from_dict(config), evolution_logger=evolution_logger)


def run_evolution(
    config: Dict[str, Any],
    evolution_logger: Optional[EvolutionLogger] = None
) -> GeneticAlgorithm:
    """
    Build and run a GeneticAlgorithm from configuration.
    
    Returns:
        The finished GeneticAlgorithm (history, best gene and pools)
    """
    algorithm = create_algorithm_from_config(config, evolution_logger)
    algorithm.run()
    return algorithm
