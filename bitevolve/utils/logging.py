"""
Logging utilities for bitevolve.

This module provides:
- Standard logging setup with file and console handlers
- EvolutionLogger for per-generation structured records (JSON lines)
"""

import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

LOGGER_NAME = 'bitevolve'
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


@dataclass
class GenerationLog:
    """One generation of a run."""
    generation: int
    total_fitness: int
    average_fitness: float
    best_fitness: int
    best_id: int
    mating_pool_size: int
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)


class EvolutionLogger:
    """
    Structured logger for tracking a genetic algorithm run.
    
    Writes one JSON line per generation to ``generations.jsonl`` and keeps
    the best fitness of every generation for the run summary.
    """
    
    def __init__(self, log_dir: Union[str, Path], log_level: int = logging.INFO):
        """
        Initialize the evolution logger.
        
        Args:
            log_dir: Directory to store the JSON lines file
            log_level: Level for the per-generation summary messages
        """
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.log_level = log_level
        self.logger = logging.getLogger(f'{LOGGER_NAME}.evolution')
        
        self.generation_log_file = self.log_dir / 'generations.jsonl'
        self.total_generations = 0
        self.best_fitness_per_generation: List[int] = []
        
        self.logger.debug(f"EvolutionLogger writing to {self.log_dir}")
    
    def log_run_start(self, population_size: int, gene_length: int, generations: int) -> None:
        self.logger.info(
            f"Starting run: {generations} generations, {population_size} genes "
            f"of {gene_length} bits"
        )
    
    def log_generation(self, generation_log: GenerationLog) -> None:
        """
        Record one generation.
        
        Args:
            generation_log: GenerationLog dataclass instance
        """
        with open(self.generation_log_file, 'a') as f:
            f.write(json.dumps(generation_log.to_dict()) + '\n')
        
        self.total_generations += 1
        self.best_fitness_per_generation.append(generation_log.best_fitness)
        
        self.logger.log(
            self.log_level,
            f"Generation {generation_log.generation}: "
            f"Avg Fitness={generation_log.average_fitness:.4f} | "
            f"Best Fitness={generation_log.best_fitness} (gene {generation_log.best_id}) | "
            f"Mating Pool={generation_log.mating_pool_size}"
        )
    
    def log_error(self, error: Exception, context: str = "") -> None:
        self.logger.error(f"Error in {context}: {error}", exc_info=True)
    
    def read_generations(self) -> List[Dict[str, Any]]:
        """Load every generation record written so far."""
        if not self.generation_log_file.exists():
            return []
        with open(self.generation_log_file, 'r') as f:
            return [json.loads(line) for line in f if line.strip()]
    
    def get_evolution_summary(self) -> Dict[str, Any]:
        """
        Summary of the run.
        
        Returns:
            Dictionary with generation count and best-fitness statistics
        """
        best = self.best_fitness_per_generation
        return {
            'total_generations': self.total_generations,
            'best_fitness_overall': max(best) if best else 0,
            'final_best_fitness': best[-1] if best else 0,
            'fitness_improvement': best[-1] - best[0] if len(best) > 1 else 0,
        }


def setup_logging(
    log_dir: Union[str, Path] = "results/logs",
    log_level: Union[str, int] = "INFO",
    log_to_file: bool = True,
    log_to_console: bool = True
) -> logging.Logger:
    """
    Set up standard logging for bitevolve.
    
    Args:
        log_dir: Directory to store log files
        log_level: Level name ('DEBUG', 'INFO', ...) or numeric level
        log_to_file: Whether to write bitevolve.log and errors.log
        log_to_console: Whether to log to the console
    
    Returns:
        The configured package logger
    """
    if isinstance(log_level, int):
        level = log_level
    else:
        level = logging.getLevelName(str(log_level).upper())
        if not isinstance(level, int):
            level = logging.INFO
    
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    
    # Clear existing handlers
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    
    if log_to_console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)
    
    if log_to_file:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        
        file_handler = logging.FileHandler(log_path / 'bitevolve.log', mode='a')
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
        
        # Errors also go to a separate file
        error_handler = logging.FileHandler(log_path / 'errors.log', mode='a')
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(formatter)
        logger.addHandler(error_handler)
    
    logger.info(f"Logging initialized at level {logging.getLevelName(level)}")
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get the package logger, or a child of it."""
    return logging.getLogger(f'{LOGGER_NAME}.{name}' if name else LOGGER_NAME)
