"""
Business Feature Engineering Main

Entry point for extracting training datasets for a tenant and running them
through the preprocessing pipeline.

Usage:
    python -m src.feature_engineering.main --tenant acme                 # All sources, default settings
    python -m src.feature_engineering.main --tenant acme --source sales  # Sales only
    python -m src.feature_engineering.main --tenant acme --config custom.json
    python -m src.feature_engineering.main --tenant acme --output summary.json
"""

import sys
import argparse
import json
import logging
from pathlib import Path
from typing import Dict, Optional

from dotenv import load_dotenv

from src.record_store.cloud_utils import StorageHandler
from src.record_store.sources import StorageRecordSource

from .exceptions import FeatureEngineeringError
from .extraction import FeatureExtractor
from .preprocessing.data_processor import FeatureProcessor, get_default_processing_config, merge_config

SOURCES = ['sales', 'cashflow', 'projects', 'customers']


def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None):
    """
    Set up logging configuration.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional log file path
    """
    log_format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format=log_format,
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(log_format))
        logging.getLogger().addHandler(file_handler)

    # boto3 is chatty at INFO
    logging.getLogger('botocore').setLevel(logging.WARNING)


def load_config(config_path: str) -> Dict:
    """
    Load configuration from JSON file.

    Args:
        config_path: Path to configuration file

    Returns:
        Configuration dictionary (empty if the file is missing or invalid)
    """
    try:
        with open(config_path, 'r') as f:
            config = json.load(f)
        logging.info(f"Loaded configuration from {config_path}")
        return config
    except FileNotFoundError:
        logging.warning(f"Configuration file {config_path} not found, using defaults")
        return {}
    except json.JSONDecodeError as e:
        logging.error(f"Error parsing configuration file: {e}")
        return {}


def get_default_config() -> Dict:
    """
    Get default configuration.

    Returns:
        Default configuration dictionary
    """
    project_root = Path(__file__).parent.parent.parent

    return {
        'data_paths': {
            'records': str(project_root / 'data' / 'records'),
        },
        'extraction': {
            'sales_lookback_days': 365,
            'cash_flow_lookback_days': 180,
            'max_workers': 4,
        },
        **get_default_processing_config(),
    }


def print_processing_summary(summaries: Dict[str, Dict]):
    """
    Print a summary of processing results.

    Args:
        summaries: Per-source summaries from FeatureProcessor.generate_summary
    """
    print("\n" + "=" * 80)
    print("PROCESSING SUMMARY")
    print("=" * 80)

    for source, summary in summaries.items():
        original = summary['original']
        processed = summary['processed'] or {}
        print(f"\n{source.upper()} ({original['target_name']}):")
        print(f"  Samples: {original['sample_count']} -> {processed.get('sample_count', 0)}")
        print(f"  Features: {original['feature_count']} -> {processed.get('feature_count', 0)}")

        for step, info in summary['steps'].items():
            print(f"  {step}: {info.get('status')}")

        quality = summary.get('quality')
        if quality:
            print(f"  Quality Score: {quality['overall']:.3f}")
            for issue in quality['issues']:
                print(f"    [{issue['severity']}] {issue['description']}")


def main(argv=None):
    """
    Extract and preprocess training datasets for one tenant.
    """
    parser = argparse.ArgumentParser(
        description="Business Feature Engineering Pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument('--tenant', '-t', required=True,
                        help='Tenant identifier whose records are processed')
    parser.add_argument('--source', '-s', default='all', choices=SOURCES + ['all'],
                        help='Extraction target')
    parser.add_argument('--start', help='Range start date (sales and cashflow)')
    parser.add_argument('--end', help='Range end date (sales and cashflow)')
    parser.add_argument('--config', '-c',
                        help='Path to configuration JSON file')
    parser.add_argument('--data-dir', '-d',
                        help='Local directory holding <tenant>/<entity>.json record exports')
    parser.add_argument('--output', '-o',
                        help='Write the JSON processing summary to this file')
    parser.add_argument('--log-level', default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Set logging level')
    parser.add_argument('--log-file',
                        help='Save logs to file')

    args = parser.parse_args(argv)

    load_dotenv()
    setup_logging(args.log_level, args.log_file)
    logger = logging.getLogger(__name__)

    logger.info("Starting business feature engineering pipeline...")
    logger.info(f"Arguments: {vars(args)}")

    try:
        config = get_default_config()
        if args.config:
            config = merge_config(config, load_config(args.config))
        if args.data_dir:
            config['data_paths']['records'] = args.data_dir

        storage = StorageHandler.from_env(local_base=config['data_paths']['records'])
        source = StorageRecordSource(storage)
        extractor = FeatureExtractor(source, args.tenant, config['extraction'])
        processor = FeatureProcessor(config)

        targets = SOURCES if args.source == 'all' else [args.source]
        datasets = extractor.extract_all(targets, start=args.start, end=args.end)

        summaries = {}
        for target, dataset in datasets.items():
            results = processor.process(dataset)
            summaries[target] = processor.generate_summary(results)

        print_processing_summary(summaries)

        if args.output:
            output_path = Path(args.output)
            output_path.parent.mkdir(parents=True, exist_ok=True)
            with open(output_path, 'w') as f:
                json.dump(summaries, f, indent=2, default=str)
            logger.info(f"Processing summary saved to {output_path}")

        logger.info("Feature engineering pipeline completed successfully!")
        return 0

    except KeyboardInterrupt:
        logger.info("Processing interrupted by user")
        return 1

    except FeatureEngineeringError as e:
        logger.error(f"Invalid input for feature engineering: {e}")
        return 1

    except Exception as e:
        logger.error(f"Error in feature engineering pipeline: {str(e)}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
