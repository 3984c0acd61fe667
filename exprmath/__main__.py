"""
Main entry point for exprmath.

This module provides the command line interface for running the
exploration and classification workflows on expression matrices.
"""

import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional

import yaml

from exprmath.analysis import classification_to_dict, run_classification, run_exploration
from exprmath.components.config import ConfigManager, load_config_file
from exprmath.data.loader import load_sample_matrix, make_blobs_matrix
from exprmath.math.exceptions import ExprMathError

logger = logging.getLogger('exprmath')


def setup_logging(level: str = 'INFO') -> None:
    """
    Set up logging.

    Args:
        level: Logging level
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler()
        ]
    )


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command line arguments.

    Args:
        argv: Arguments (defaults to sys.argv)

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(description='Unsupervised and SVM analysis of expression matrices')

    parser.add_argument(
        '--config',
        help='Path to configuration file (yaml or json)'
    )

    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='Logging level (defaults to the logging.level setting)'
    )

    parser.add_argument(
        '--output',
        help='Write the report to this file (.json or .yaml) instead of stdout'
    )

    parser.add_argument(
        '--seed',
        type=int,
        help='Seed for k-means restarts'
    )

    parser.add_argument(
        '-k',
        type=int,
        help='Number of clusters for both hierarchical clustering and k-means'
    )

    subparsers = parser.add_subparsers(dest='command', required=True)

    explore = subparsers.add_parser('explore', help='PCA and clustering of a sample matrix')
    explore.add_argument('data', help='CSV/TSV file, one row per sample')
    explore.add_argument('--labels', help='File with one label per sample')
    explore.add_argument('--label-column', help='Column of the data file holding the labels')
    explore.add_argument('--no-index', action='store_true',
                         help='The file has no sample-id column; number the samples instead')

    classify = subparsers.add_parser('classify', help='Linear SVM on a train/test split')
    classify.add_argument('train', help='Training CSV/TSV file')
    classify.add_argument('test', nargs='?', help='Test CSV/TSV file')
    classify.add_argument('--label-column', required=True, help='Column holding the classes')
    classify.add_argument('--cost', type=float, help='SVM cost parameter')
    classify.add_argument('--no-index', action='store_true',
                          help='The files have no sample-id column; number the samples instead')

    synthetic = subparsers.add_parser('synthetic', help='Explore generated Gaussian blobs')
    synthetic.add_argument('--samples', type=int, default=64)
    synthetic.add_argument('--features', type=int, default=6830)
    synthetic.add_argument('--groups', type=int, default=4)

    return parser.parse_args(argv)


def build_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """
    Create configuration overrides from a config file and the arguments.

    Args:
        args: Parsed arguments

    Returns:
        Overrides dictionary
    """
    overrides = {}

    # Load configuration from file if provided
    if args.config:
        overrides.update(load_config_file(args.config))

    if args.seed is not None:
        overrides.setdefault('kmeans', {})['seed'] = args.seed

    if args.k is not None:
        overrides.setdefault('kmeans', {})['k'] = args.k
        overrides.setdefault('hclust', {})['k'] = args.k

    if getattr(args, 'cost', None) is not None:
        overrides.setdefault('svm', {})['cost'] = args.cost

    return overrides


def index_col(args: argparse.Namespace) -> Optional[int]:
    """Column of the data files holding the sample ids."""
    return None if getattr(args, 'no_index', False) else 0


def write_report(report: Dict[str, Any], output: Optional[str]) -> None:
    """
    Write a report as JSON or YAML.

    Args:
        report: Report dictionary of plain Python values
        output: Target path, or None for stdout
    """
    if output is None:
        yaml.safe_dump(report, sys.stdout, default_flow_style=False, sort_keys=False)
    elif output.endswith('.json'):
        with open(output, 'w') as f:
            json.dump(report, f, indent=2)
    elif output.endswith('.yaml') or output.endswith('.yml'):
        with open(output, 'w') as f:
            yaml.safe_dump(report, f, default_flow_style=False, sort_keys=False)
    else:
        raise ValueError(f"Unsupported report format: {output}")


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point.
    """
    # Parse arguments
    args = parse_args(argv)

    try:
        # Every run starts from defaults, the environment and its own options
        ConfigManager.reset()
        config = ConfigManager.get_config(build_overrides(args))

        # Set up logging
        setup_logging(args.log_level or config.get('logging.level'))

        if args.command == 'explore':
            matrix = load_sample_matrix(args.data, label_column=args.label_column,
                                        labels_path=args.labels, index_col=index_col(args))
            report = run_exploration(matrix, config).to_dict()
        elif args.command == 'classify':
            train = load_sample_matrix(args.train, label_column=args.label_column,
                                       index_col=index_col(args))
            test = None
            if args.test:
                test = load_sample_matrix(args.test, label_column=args.label_column,
                                          index_col=index_col(args))
            report = classification_to_dict(run_classification(train, test, config))
        else:
            matrix = make_blobs_matrix(args.samples, args.features, args.groups,
                                       seed=config.get('kmeans.seed'))
            report = run_exploration(matrix, config).to_dict()

        write_report(report, args.output)
    except (ExprMathError, FileNotFoundError, ValueError) as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
