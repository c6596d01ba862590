"""
Feature Processing Pipeline

Main orchestrator that takes an extracted training dataset through missing
value handling, categorical encoding, normalization, polynomial expansion and
variance selection, then assesses the quality of the result.
"""

import copy
import logging
from datetime import datetime
from typing import Any, Dict, List

from ..dataset import TrainingDataset
from .categorical_encoder import encode_categorical_with_names
from .data_normalizer import DataNormalizer
from .data_quality import DataQualityAssessor
from .feature_selection import polynomial_feature_names, polynomial_features, select_by_variance
from .missing_data_handler import MissingDataHandler

logger = logging.getLogger(__name__)


def get_default_processing_config() -> Dict:
    """Default preprocessing configuration."""
    return {
        'preprocessing': {
            'handle_missing': 'mean',
            'categorical_columns': [],
            'encoding': 'onehot',
            'normalization': 'minmax',
            'polynomial_degree': 1,
            'variance_threshold': None,
        },
        'quality': {
            'assess': True,
            'outlier_multiplier': 1.5,
        },
    }


def merge_config(defaults: Dict, overrides: Dict) -> Dict:
    """Recursively merge override values into a copy of the defaults."""
    merged = copy.deepcopy(defaults)
    for key, value in (overrides or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = value
    return merged


class FeatureProcessor:
    """
    Coordinates all preprocessing steps for one training dataset.
    Every step is a pure function of its input; the original dataset is
    never modified.
    """

    def __init__(self, config: Dict = None):
        """
        Initialize the feature processor.

        Args:
            config: Configuration dictionary merged over the defaults
        """
        self.config = merge_config(get_default_processing_config(), config or {})
        self.processing_history: List[Dict[str, Any]] = []

    def process(self, dataset: TrainingDataset) -> Dict[str, Any]:
        """
        Run the preprocessing pipeline on a dataset.

        Args:
            dataset: Extracted training dataset

        Returns:
            Dictionary with the original and processed datasets, scaling
            parameters, encoding maps, selected feature indices, the quality
            report and per-step metadata
        """
        options = self.config['preprocessing']
        logger.info(f"=== Processing {dataset.target_name} dataset "
                    f"({dataset.sample_count} samples, {len(dataset.feature_names)} features) ===")

        results = {
            'timestamp': datetime.now().isoformat(),
            'original': dataset,
            'processed': None,
            'scaling_params': None,
            'encoding_maps': {},
            'selected_feature_indices': None,
            'quality': None,
            'steps': {},
        }

        rows = [list(row) for row in dataset.features]
        target = list(dataset.target)
        names = list(dataset.feature_names)

        if not rows:
            logger.warning(f"No samples for {dataset.target_name}; skipping preprocessing")
            for step in ('missing_data', 'encoding', 'normalization', 'polynomial', 'selection'):
                results['steps'][step] = {'status': 'skipped', 'reason': 'empty dataset'}
            results['processed'] = TrainingDataset.empty(names, dataset.target_name)
            if self.config['quality']['assess']:
                results['quality'] = self._assess(rows, names)
            self._record(results)
            return results

        try:
            # Step 1: Missing values
            strategy = options.get('handle_missing')
            if strategy:
                logger.info("Step 1: Handling missing values...")
                handler = MissingDataHandler(strategy, options.get('categorical_columns') or [])
                analysis = handler.analyze_missing_patterns(rows)
                rows = handler.handle_missing_data(rows)
                if handler.dropped_rows_:
                    dropped = set(handler.dropped_rows_)
                    target = [value for index, value in enumerate(target) if index not in dropped]
                results['steps']['missing_data'] = {
                    'status': 'success',
                    'strategy': strategy,
                    'missing_before': analysis['total_missing'],
                    'rows_dropped': len(handler.dropped_rows_),
                    'fill_values': handler.get_imputation_summary()['fill_values'],
                    'shape_after': self._shape(rows, names),
                }
            else:
                results['steps']['missing_data'] = {'status': 'skipped'}

            if not rows:
                logger.warning("All rows were dropped during missing value handling")
                return self._finish_empty(results, names, dataset)

            # Step 2: Categorical encoding
            categorical = options.get('categorical_columns') or []
            if categorical:
                logger.info("Step 2: Encoding categorical features...")
                method = options.get('encoding', 'onehot')
                rows, encoding_maps, names = encode_categorical_with_names(rows, categorical, method, names)
                results['encoding_maps'] = encoding_maps
                results['steps']['encoding'] = {
                    'status': 'success',
                    'method': method,
                    'columns': sorted(encoding_maps),
                    'shape_after': self._shape(rows, names),
                }
            else:
                results['steps']['encoding'] = {'status': 'skipped'}

            # Step 3: Normalization
            method = options.get('normalization')
            if method:
                logger.info("Step 3: Normalizing features...")
                normalizer = DataNormalizer(method)
                rows = normalizer.fit_transform(rows)
                results['scaling_params'] = normalizer.scaling_params_
                results['steps']['normalization'] = {
                    'status': 'success',
                    'normalization_info': normalizer.get_feature_info(),
                    'shape_after': self._shape(rows, names),
                }
            else:
                results['steps']['normalization'] = {'status': 'skipped'}

            # Step 4: Polynomial expansion
            degree = options.get('polynomial_degree') or 1
            if degree > 1:
                logger.info(f"Step 4: Creating polynomial features (degree {degree})...")
                rows = polynomial_features(rows, degree)
                names = polynomial_feature_names(names, degree)
                results['steps']['polynomial'] = {
                    'status': 'success',
                    'degree': degree,
                    'shape_after': self._shape(rows, names),
                }
            else:
                results['steps']['polynomial'] = {'status': 'skipped'}

            # Step 5: Variance selection
            threshold = options.get('variance_threshold')
            if threshold is not None:
                logger.info(f"Step 5: Selecting features by variance (threshold {threshold})...")
                rows, selected = select_by_variance(rows, threshold)
                names = [names[index] for index in selected]
                results['selected_feature_indices'] = selected
                results['steps']['selection'] = {
                    'status': 'success',
                    'threshold': threshold,
                    'features_kept': len(selected),
                    'shape_after': self._shape(rows, names),
                }
            else:
                results['steps']['selection'] = {'status': 'skipped'}

            processed = TrainingDataset(
                rows, target, names, dataset.target_name,
                metadata={**dataset.metadata, 'processed': True},
            )
            results['processed'] = processed

            # Step 6: Quality assessment
            if self.config['quality']['assess']:
                logger.info("Step 6: Assessing data quality...")
                results['quality'] = self._assess(rows, names)

        except Exception as e:
            logger.error(f"Error processing {dataset.target_name} dataset: {e}")
            results['steps']['error'] = {'status': 'failed', 'error': str(e)}
            raise

        logger.info(f"Processing completed. Final shape: {self._shape(rows, names)}")
        self._record(results)
        return results

    def _finish_empty(self, results: Dict, names: List[str], dataset: TrainingDataset) -> Dict:
        for step in ('encoding', 'normalization', 'polynomial', 'selection'):
            results['steps'][step] = {'status': 'skipped', 'reason': 'no rows left'}
        results['processed'] = TrainingDataset.empty(names, dataset.target_name)
        if self.config['quality']['assess']:
            results['quality'] = self._assess([], names)
        self._record(results)
        return results

    def _assess(self, rows, names):
        assessor = DataQualityAssessor(outlier_multiplier=self.config['quality']['outlier_multiplier'])
        return assessor.assess(rows, names)

    @staticmethod
    def _shape(rows, names):
        return (len(rows), len(rows[0]) if rows else len(names))

    def _record(self, results: Dict):
        self.processing_history.append({
            'timestamp': results['timestamp'],
            'target_name': results['original'].target_name,
            'steps': {step: info.get('status') for step, info in results['steps'].items()},
        })

    def generate_summary(self, results: Dict) -> Dict[str, Any]:
        """JSON-serializable summary of a process() result."""
        quality = results.get('quality')
        processed = results.get('processed')
        return {
            'timestamp': results['timestamp'],
            'original': results['original'].summary(),
            'processed': processed.summary() if processed is not None else None,
            'steps': results['steps'],
            'scaling_params': {str(k): v for k, v in (results.get('scaling_params') or {}).items()},
            'encoding_maps': {
                str(index): _serializable_encoding(encoding)
                for index, encoding in (results.get('encoding_maps') or {}).items()
            },
            'selected_feature_indices': results.get('selected_feature_indices'),
            'quality': quality.to_dict() if quality is not None else None,
        }


def _serializable_encoding(encoding: Dict[str, Any]) -> Dict[str, Any]:
    if encoding['type'] == 'onehot':
        return {'type': 'onehot', 'values': [str(value) for value in encoding['values']]}
    return {'type': 'label', 'map': {str(value): label for value, label in encoding['map'].items()}}


def process_business_data(extractor, target: str = 'sales', config: Dict = None, **extract_kwargs) -> Dict:
    """
    Quick processing function: extract one target and run the pipeline.

    Args:
        extractor: FeatureExtractor bound to a record source and tenant
        target: Extraction target ('sales', 'cashflow', 'projects', 'customers')
        config: Processing configuration
        **extract_kwargs: Forwarded to the extraction method (e.g. start, end)

    Returns:
        Processing results
    """
    dataset = extractor.extract(target, **extract_kwargs)
    processor = FeatureProcessor(config)
    return processor.process(dataset)
