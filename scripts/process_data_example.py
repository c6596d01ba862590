"""
Feature Engineering Example Script

Demonstrates how to extract training datasets from business records and run
them through the preprocessing pipeline, using a small in-memory tenant.

This script shows the complete workflow from raw records to ML-ready matrices.
"""

import logging
from pathlib import Path
import sys

# Add the project root to the path so we can import our modules
sys.path.append(str(Path(__file__).parent.parent))

from src.feature_engineering import FeatureExtractor, process_business_data
from src.feature_engineering.preprocessing import (
    DataQualityAssessor,
    MissingDataHandler,
    encode_categorical,
    handle_missing_values,
    normalize,
    polynomial_features,
    select_by_variance,
)
from src.record_store.sources import InMemoryRecordSource

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

TENANT = "demo"


def build_demo_source() -> InMemoryRecordSource:
    """A year of invoices and a quarter of transactions for one tenant."""
    invoices = []
    for month in range(1, 13):
        for day, customer in ((3, 'acme'), (17, 'globex'), (25, 'initech' if month % 3 == 0 else 'acme')):
            invoices.append({
                'issue_date': f"2024-{month:02d}-{day:02d}",
                'total_amount': 1000 + month * 150 + day * 10,
                'customer_id': customer,
                'status': 'PAID',
                'items': [{'id': i} for i in range(1 + day % 3)],
            })

    transactions = []
    for day in range(1, 91, 3):
        date = f"2024-{1 + (day - 1) // 30:02d}-{1 + (day - 1) % 30:02d}"
        transactions.append({'date': date, 'amount': 500 + day * 7, 'type': 'INCOME'})
        transactions.append({'date': date, 'amount': -(200 + day * 3), 'type': 'EXPENSE'})

    return InMemoryRecordSource({TENANT: {'invoices': invoices, 'transactions': transactions}})


def demonstrate_complete_pipeline(source):
    """
    Demonstrate the complete processing pipeline on monthly sales.
    """
    logger.info("=== Sales Feature Pipeline Demo ===")

    config = {
        'preprocessing': {
            'handle_missing': 'median',
            'normalization': 'zscore',
            'polynomial_degree': 2,
            'variance_threshold': 0.01,
        },
    }

    extractor = FeatureExtractor(source, TENANT)
    results = process_business_data(extractor, 'sales', config, start='2024-01-01', end='2024-12-31')

    original = results['original']
    processed = results['processed']
    quality = results['quality']

    print("\n" + "=" * 60)
    print("PROCESSING SUMMARY")
    print("=" * 60)
    print(f"  Original shape: ({original.sample_count}, {len(original.feature_names)})")
    print(f"  Final shape: ({processed.sample_count}, {len(processed.feature_names)})")
    print(f"  Quality score: {quality.overall:.3f}")
    for issue in quality.issues:
        print(f"    [{issue.severity}] {issue.description}")

    print("\n  Sample of processed sales data:")
    print(processed.to_frame().head(3).to_string())

    return results


def demonstrate_individual_components():
    """
    Demonstrate using individual components for specific tasks.
    """
    logger.info("\n=== Individual Components Demo ===")

    matrix = [
        [12.0, 'retail', 3],
        [None, 'wholesale', 5],
        [15.5, 'retail', None],
        [11.0, None, 4],
        [95.0, 'online', 4],
    ]

    analysis = MissingDataHandler().analyze_missing_patterns(matrix)
    print(f"\nMissing data analysis:")
    print(f"  Total missing: {analysis['total_missing']}")
    print(f"  Missing percentage: {analysis['missing_percentage']:.2f}%")

    report = DataQualityAssessor().assess(matrix, ['amount', 'channel', 'items'])
    print(f"\nRaw quality score: {report.overall:.3f}")
    for issue in report.issues:
        print(f"  - [{issue.severity}] {issue.description}")

    filled = handle_missing_values(matrix, 'mean', categorical_indices=[1])
    encoded, encoding_maps = encode_categorical(filled, [1], 'onehot')
    print(f"\nChannel categories: {encoding_maps[1]['values']}")

    scaled, params = normalize(encoded, 'minmax')
    expanded = polynomial_features(scaled, degree=2)
    selected, indices = select_by_variance(expanded, threshold=0.05)
    print(f"Columns: {len(encoded[0])} encoded -> {len(expanded[0])} expanded -> {len(indices)} selected")

    return selected


def main():
    """
    Main function that runs all demonstrations.
    """
    print("Business Feature Engineering Demonstration")
    print("=" * 60)

    try:
        source = build_demo_source()

        print("\n1. Running complete pipeline...")
        demonstrate_complete_pipeline(source)

        print("\n2. Running individual components demonstration...")
        demonstrate_individual_components()

        print("\n" + "=" * 60)
        print("ALL DEMONSTRATIONS COMPLETED SUCCESSFULLY!")
        print("=" * 60)

    except Exception as e:
        logger.error(f"Error in main execution: {e}")
        print(f"\nAn error occurred: {e}")
        print("Please check the log messages above for more details.")


if __name__ == "__main__":
    main()
