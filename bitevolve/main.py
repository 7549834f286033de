#!/usr/bin/env python3
"""
bitevolve: evolve lookup-table policies with a bit-packed genetic algorithm.

Main entry point for running a configured evolution.

Usage:
    python -m bitevolve.main --config onemax
    python -m bitevolve.main --config blackjack --generations 400
    python -m bitevolve.main --config-path my_run.yaml --seed 7
"""

import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .evolutionary.algorithm import GeneticAlgorithm, create_algorithm_from_config
from .utils.logging import EvolutionLogger, setup_logging
from .utils.visualization import plot_fitness_vs_generation, plot_gene_bitmap

logger = logging.getLogger(__name__)

CONFIG_DIR = Path(__file__).parent.parent / "config"


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration from a YAML file.
    
    ``config_path`` may be a file path or the name of a file under the
    project's ``config`` directory. A config that declares ``defaults`` is
    merged over ``default_config.yaml``.
    
    Args:
        config_path: Path or config name (e.g. 'onemax')
        
    Returns:
        Configuration dictionary
    
    Raises:
        FileNotFoundError: If no matching file exists
    """
    config_file = Path(config_path)
    
    if not config_file.exists():
        possible_paths = [
            CONFIG_DIR / f"{config_path}.yaml",
            CONFIG_DIR / f"{config_path}_config.yaml",
            Path("config") / f"{config_path}.yaml",
        ]
        
        for path in possible_paths:
            if path.exists():
                config_file = path
                break
        else:
            raise FileNotFoundError(
                f"Configuration file not found: {config_path}. "
                f"Tried: {[str(p) for p in possible_paths]}"
            )
    
    logger.info(f"Loading configuration from: {config_file}")
    
    with open(config_file, 'r') as f:
        config = yaml.safe_load(f) or {}
    
    if 'defaults' in config:
        default_config_path = config_file.parent / "default_config.yaml"
        if not default_config_path.exists():
            default_config_path = CONFIG_DIR / "default_config.yaml"
        if default_config_path.exists():
            with open(default_config_path, 'r') as f:
                default_config = yaml.safe_load(f) or {}
            config = _deep_merge(default_config, config)
        del config['defaults']
    
    return config


def _deep_merge(base: Dict, override: Dict) -> Dict:
    """
    Deep merge two dictionaries, with override taking precedence.
    """
    result = base.copy()
    
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    
    return result


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.
    """
    parser = argparse.ArgumentParser(
        description="bitevolve: genetic algorithm over bit-packed lookup-table policies",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # OneMax benchmark (stops at the perfect score)
  python -m bitevolve.main --config onemax

  # Evolve a blackjack draw/stand policy
  python -m bitevolve.main --config blackjack --generations 400

  # Reproducible run
  python -m bitevolve.main --config onemax --seed 42
        """
    )
    
    parser.add_argument(
        "--config", "-c",
        type=str,
        default="onemax",
        help="Configuration name under config/ (default: onemax)"
    )
    parser.add_argument(
        "--config-path",
        type=str,
        default=None,
        help="Full path to a configuration file (overrides --config)"
    )
    parser.add_argument(
        "--generations", "-g",
        type=int,
        default=None,
        help="Number of generations (overrides config)"
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed (overrides config)"
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Threads for the fitness pass (overrides config)"
    )
    parser.add_argument(
        "--output-dir", "-o",
        type=str,
        default=None,
        help="Output directory for results (default: from config, else results)"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO)"
    )
    parser.add_argument(
        "--no-visualization",
        action="store_true",
        help="Disable plot generation"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate configuration and build the population without evolving"
    )
    
    return parser.parse_args(argv)


def apply_overrides(config: Dict[str, Any], args: argparse.Namespace) -> Dict[str, Any]:
    """Copy command-line overrides into the configuration."""
    evolution = config.get('evolution') or {}
    config['evolution'] = evolution
    if args.generations is not None:
        evolution['generations'] = args.generations
        logger.info(f"Overriding generations: {args.generations}")
    if args.seed is not None:
        evolution['seed'] = args.seed
    if args.workers is not None:
        evolution['workers'] = args.workers
    if args.output_dir is not None:
        output = config.get('output') or {}
        output['directory'] = args.output_dir
        config['output'] = output
    return config


def setup_output_directories(output_dir: str) -> Dict[str, Path]:
    """
    Create the output directory structure.
    
    Returns:
        Dictionary of directory paths
    """
    base_path = Path(output_dir)
    
    directories = {
        "base": base_path,
        "metrics": base_path / "metrics",
        "visualizations": base_path / "visualizations",
        "logs": base_path / "logs",
    }
    
    for dir_path in directories.values():
        dir_path.mkdir(parents=True, exist_ok=True)
    
    return directories


def run_bitevolve(args: argparse.Namespace) -> Optional[GeneticAlgorithm]:
    """
    Main execution function.
    
    Returns:
        The finished GeneticAlgorithm, or None on failure and for dry runs
    """
    try:
        config = load_config(args.config_path or args.config)
    except (FileNotFoundError, yaml.YAMLError) as e:
        setup_logging(log_level=args.log_level, log_to_file=False)
        logger.error(f"Failed to load configuration: {e}")
        return None
    
    config = apply_overrides(config, args)
    output = config.get('output', {}) or {}
    directories = setup_output_directories(output.get('directory', 'results'))
    setup_logging(log_dir=directories["logs"], log_level=args.log_level)
    
    logger.info("=" * 60)
    logger.info("bitevolve: lookup-table genetic algorithm")
    logger.info("=" * 60)
    
    evolution_logger = EvolutionLogger(log_dir=directories["logs"])
    
    try:
        algorithm = create_algorithm_from_config(config, evolution_logger)
    except ValueError as e:
        evolution_logger.log_error(e, "configuration validation")
        return None
    
    if args.dry_run:
        logger.info("DRY RUN MODE: configuration validated, skipping evolution")
        return None
    
    try:
        algorithm.run()
    except KeyboardInterrupt:
        logger.warning("Evolution interrupted by user")
    
    logger.info("Evolution finished")
    
    if output.get('visualization', True) and not args.no_visualization:
        generate_visualizations(algorithm, directories["visualizations"])
    
    save_final_summary(algorithm, evolution_logger, directories["metrics"], config)
    logger.info(f"All results saved to: {directories['base'].absolute()}")
    return algorithm


def generate_visualizations(algorithm: GeneticAlgorithm, output_dir: Path) -> None:
    """Write the fitness curve and the best gene bitmap."""
    plot_fitness_vs_generation(algorithm.history, output_dir / "fitness.png")
    best = algorithm.best_gene()
    if best is not None:
        plot_gene_bitmap(best, output_dir / "best_gene.png")
    logger.info(f"Visualizations saved to: {output_dir}")


def save_final_summary(
    algorithm: GeneticAlgorithm,
    evolution_logger: EvolutionLogger,
    output_dir: Path,
    config: Dict[str, Any]
) -> Dict[str, Any]:
    """
    Save history.csv, summary.json and the best gene dump.
    
    Returns:
        The summary dictionary
    """
    algorithm.history_frame().to_csv(output_dir / "history.csv")
    
    best = algorithm.best_gene()
    if best is not None:
        with open(output_dir / "best_gene.txt", 'w') as f:
            f.write(best.to_text() + '\n')
    
    summary = {
        "timestamp": datetime.now().isoformat(),
        "config": config,
        "gene_length": algorithm.gene_pool.gene_length,
        "generations_run": len(algorithm.history),
        "best_fitness": best.fitness if best is not None else 0,
        **evolution_logger.get_evolution_summary(),
    }
    
    summary_path = output_dir / "summary.json"
    with open(summary_path, 'w') as f:
        json.dump(summary, f, indent=2, default=str)
    
    logger.info(f"Final summary saved to: {summary_path}")
    logger.info(f"Generations run: {summary['generations_run']}, "
                f"best fitness: {summary['best_fitness']}")
    return summary


def main(argv: Optional[List[str]] = None):
    """
    Main entry point.
    """
    args = parse_arguments(argv)
    algorithm = run_bitevolve(args)
    
    if algorithm is not None or args.dry_run:
        sys.exit(0)
    else:
        sys.exit(1)


if __name__ == "__main__":
    main()
