"""
Feature Extractor Module

Turns tenant-scoped business records into training datasets: monthly sales,
weekly cash flow, per-project timelines and per-customer value scores.
"""

import math
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Dict, Iterable, List, Optional

import numpy as np
import pandas as pd

from ..dataset import TrainingDataset
from ..exceptions import UnsupportedStrategyError
from .periods import (
    PeriodAggregate,
    bucket_records,
    growth_rate,
    is_holiday_season,
    is_month_end,
    month_key,
    parse_date,
    quarter_of,
    week_key,
    week_of_year,
)

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60

SALES_FEATURES = [
    'month_index',
    'month_of_year',
    'quarter',
    'is_holiday_season',
    'invoice_count',
    'avg_invoice_amount',
    'unique_customers',
    'revenue_growth_rate',
    'customer_retention_rate',
    'avg_items_per_invoice',
]

CASH_FLOW_FEATURES = [
    'week_index',
    'week_of_year',
    'month',
    'is_month_end',
    'income_count',
    'expense_count',
    'avg_income',
    'avg_expense',
    'income_variance',
    'expense_variance',
    'net_flow_trend',
]

PROJECT_FEATURES = [
    'total_tasks',
    'team_size',
    'avg_task_complexity',
    'high_priority_tasks_ratio',
    'estimated_hours_total',
    'budget_amount',
    'start_month',
    'start_quarter',
    'dependencies_count',
    'external_dependencies_ratio',
]

CUSTOMER_FEATURES = [
    'total_revenue',
    'invoice_count',
    'avg_invoice_amount',
    'days_since_first_purchase',
    'days_since_last_purchase',
    'purchase_frequency',
    'contact_frequency',
    'avg_days_between_purchases',
    'revenue_trend',
    'seasonal_buyer',
]

SALES_STATUSES = {'PAID', 'SENT'}
TRAINING_PROJECT_STATUSES = {'COMPLETED', 'CANCELLED'}
HIGH_PRIORITIES = {'HIGH', 'URGENT'}


def _amount(value: Any) -> float:
    if value is None:
        return 0.0
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return 0.0
    return 0.0 if math.isnan(amount) else amount


def _population_variance(values: List[float]) -> float:
    if len(values) <= 1:
        return 0.0
    return float(np.var(values))


def _days_between(later: pd.Timestamp, earlier: pd.Timestamp) -> float:
    return (later - earlier).total_seconds() / SECONDS_PER_DAY


class FeatureExtractor:
    """
    Extracts training datasets for one tenant from a record source.

    The record source only needs to satisfy the RecordSource protocol
    (fetch_invoices, fetch_transactions, fetch_projects, fetch_customers).
    """

    def __init__(self, source, tenant_id: str, config: Dict = None):
        """
        Initialize the feature extractor.

        Args:
            source: Record source implementing the RecordSource protocol
            tenant_id: Tenant whose records are extracted
            config: Optional overrides for default lookback windows
        """
        default_config = {
            'sales_lookback_days': 365,
            'cash_flow_lookback_days': 180,
            'max_workers': 4,
        }
        self.source = source
        self.tenant_id = tenant_id
        self.config = {**default_config, **(config or {})}

        self.extractors = {
            'sales': self.extract_sales_features,
            'cashflow': self.extract_cash_flow_features,
            'projects': self.extract_project_features,
            'customers': self.extract_customer_features,
        }

    def _resolve_range(self, start, end, lookback_days: int):
        end_ts = parse_date(end) if end is not None else pd.Timestamp.now()
        if end_ts is None:
            raise ValueError(f"Invalid end date: {end!r}")
        start_ts = parse_date(start) if start is not None else end_ts - pd.Timedelta(days=lookback_days)
        if start_ts is None:
            raise ValueError(f"Invalid start date: {start!r}")
        return start_ts, end_ts

    # ==================== SALES ====================

    def extract_sales_features(self, start=None, end=None) -> TrainingDataset:
        """
        Extract monthly features for sales forecasting.

        Args:
            start: Range start (defaults to one year before end)
            end: Range end (defaults to now)

        Returns:
            TrainingDataset with one row per month and total revenue as target
        """
        start_ts, end_ts = self._resolve_range(start, end, self.config['sales_lookback_days'])
        logger.info(f"Extracting sales features for tenant {self.tenant_id} "
                    f"({start_ts.date()} - {end_ts.date()})")

        invoices = self.source.fetch_invoices(self.tenant_id, start_ts, end_ts)
        invoices = [
            inv for inv in invoices
            if inv.get('status') is None or inv.get('status') in SALES_STATUSES
        ]

        buckets = bucket_records(invoices, 'issue_date', month_key, self._accumulate_invoice)

        features = []
        targets = []
        previous: Optional[PeriodAggregate] = None
        for index, bucket in enumerate(buckets.values()):
            month = bucket.first_date.month
            revenue = bucket.total('revenue')
            customers = bucket.distinct('customers')

            if previous is None:
                revenue_growth = 0.0
                retention = 0.0
            else:
                revenue_growth = growth_rate(revenue, previous.total('revenue'))
                retention = (len(customers & previous.distinct('customers')) / len(customers)
                             if customers else 0.0)

            features.append([
                index,
                month,
                quarter_of(month),
                1 if is_holiday_season(month) else 0,
                bucket.count,
                revenue / bucket.count,
                len(customers),
                revenue_growth,
                retention,
                bucket.total('items') / bucket.count,
            ])
            targets.append(revenue)
            previous = bucket

        logger.info(f"Extracted {len(features)} monthly sales rows from {len(invoices)} invoices")
        return TrainingDataset(features, targets, list(SALES_FEATURES), 'total_revenue',
                               metadata={'source': 'sales', 'periods': list(buckets.keys())})

    @staticmethod
    def _accumulate_invoice(bucket: PeriodAggregate, invoice: Dict[str, Any]):
        bucket.add_amount('revenue', _amount(invoice.get('total_amount')))
        bucket.add_entity('customers', invoice.get('customer_id'))
        items = invoice.get('items') or []
        bucket.add_amount('items', len(items) or 1)

    # ==================== CASH FLOW ====================

    def extract_cash_flow_features(self, start=None, end=None) -> TrainingDataset:
        """
        Extract weekly features for cash flow prediction.

        Args:
            start: Range start (defaults to 180 days before end)
            end: Range end (defaults to now)

        Returns:
            TrainingDataset with one row per week and net cash flow as target
        """
        start_ts, end_ts = self._resolve_range(start, end, self.config['cash_flow_lookback_days'])
        logger.info(f"Extracting cash flow features for tenant {self.tenant_id} "
                    f"({start_ts.date()} - {end_ts.date()})")

        transactions = self.source.fetch_transactions(self.tenant_id, start_ts, end_ts)
        buckets = bucket_records(transactions, 'date', week_key, self._accumulate_transaction)

        features = []
        targets = []
        previous_net_flow = None
        for index, bucket in enumerate(buckets.values()):
            incomes = bucket.values('income')
            expenses = bucket.values('expense')
            net_flow = bucket.total('income') - bucket.total('expense')
            first = bucket.first_date

            features.append([
                index,
                week_of_year(first),
                first.month,
                1 if is_month_end(first) else 0,
                len(incomes),
                len(expenses),
                float(np.mean(incomes)) if incomes else 0.0,
                float(np.mean(expenses)) if expenses else 0.0,
                _population_variance(incomes),
                _population_variance(expenses),
                net_flow - previous_net_flow if previous_net_flow is not None else 0.0,
            ])
            targets.append(net_flow)
            previous_net_flow = net_flow

        logger.info(f"Extracted {len(features)} weekly cash flow rows from {len(transactions)} transactions")
        return TrainingDataset(features, targets, list(CASH_FLOW_FEATURES), 'net_cash_flow',
                               metadata={'source': 'cashflow', 'periods': list(buckets.keys())})

    @staticmethod
    def _accumulate_transaction(bucket: PeriodAggregate, transaction: Dict[str, Any]):
        amount = _amount(transaction.get('amount'))
        if transaction.get('type') == 'INCOME':
            bucket.add_amount('income', amount)
        else:
            bucket.add_amount('expense', abs(amount))

    # ==================== PROJECTS ====================

    def extract_project_features(self, project_id: str = None) -> TrainingDataset:
        """
        Extract per-project features for timeline prediction.

        Only finished projects (completed or cancelled) with both a start and an
        end date become training rows.

        Args:
            project_id: Restrict extraction to a single project

        Returns:
            TrainingDataset with one row per project and duration in days as target
        """
        logger.info(f"Extracting project features for tenant {self.tenant_id}")
        projects = self.source.fetch_projects(self.tenant_id, project_id)

        dated = []
        for position, project in enumerate(projects):
            if project.get('status') not in TRAINING_PROJECT_STATUSES:
                continue
            start_ts = parse_date(project.get('start_date'))
            end_ts = parse_date(project.get('end_date'))
            if start_ts is None or end_ts is None:
                logger.debug(f"Skipping project {project.get('id')} without start/end date")
                continue
            dated.append((start_ts, position, end_ts, project))
        dated.sort(key=lambda item: (item[0], item[1]))

        features = []
        targets = []
        for start_ts, _, end_ts, project in dated:
            features.append(self._single_project_features(project, start_ts))
            targets.append(_days_between(end_ts, start_ts))

        logger.info(f"Extracted {len(features)} project rows from {len(projects)} projects")
        return TrainingDataset(features, targets, list(PROJECT_FEATURES), 'project_duration_days',
                               metadata={'source': 'projects'})

    @staticmethod
    def _single_project_features(project: Dict[str, Any], start_ts: pd.Timestamp) -> List[float]:
        tasks = project.get('tasks') or []
        members = project.get('members') or []

        total_tasks = len(tasks)
        high_priority = sum(1 for task in tasks if task.get('priority') in HIGH_PRIORITIES)
        estimated_hours = sum(_amount(task.get('estimated_hours')) for task in tasks)

        if tasks:
            complexity = sum(_amount(task.get('estimated_hours')) or 8.0 for task in tasks) / total_tasks / 8
        else:
            complexity = 1.0

        task_ids = {task.get('id') for task in tasks if task.get('id') is not None}
        dependencies = [dep for task in tasks for dep in (task.get('dependencies') or [])]
        external = sum(1 for dep in dependencies if dep not in task_ids)

        return [
            total_tasks,
            len(members),
            complexity,
            high_priority / total_tasks if total_tasks > 0 else 0.0,
            estimated_hours,
            _amount(project.get('budget')),
            start_ts.month,
            quarter_of(start_ts.month),
            len(dependencies),
            external / len(dependencies) if dependencies else 0.0,
        ]

    # ==================== CUSTOMERS ====================

    def extract_customer_features(self, as_of=None) -> TrainingDataset:
        """
        Extract per-customer behaviour features.

        Args:
            as_of: Reference time for recency features (defaults to now)

        Returns:
            TrainingDataset with one row per purchasing customer and an
            RFM value score in [0, 1] as target
        """
        now = parse_date(as_of) if as_of is not None else pd.Timestamp.now()
        if now is None:
            raise ValueError(f"Invalid as_of date: {as_of!r}")
        logger.info(f"Extracting customer features for tenant {self.tenant_id} as of {now.date()}")
        customers = self.source.fetch_customers(self.tenant_id)

        features = []
        targets = []
        for customer in customers:
            invoices = self._dated_invoices(customer.get('invoices') or [])
            if not invoices:
                continue
            features.append(self._single_customer_features(customer, invoices, now))
            targets.append(self._customer_value_score(invoices, now))

        logger.info(f"Extracted {len(features)} customer rows from {len(customers)} customers")
        return TrainingDataset(features, targets, list(CUSTOMER_FEATURES), 'customer_value_score',
                               metadata={'source': 'customers'})

    @staticmethod
    def _dated_invoices(invoices: Iterable[Dict[str, Any]]):
        """Invoices with a valid issue date, oldest first, as (timestamp, amount) pairs."""
        dated = []
        for position, invoice in enumerate(invoices):
            ts = parse_date(invoice.get('issue_date'))
            if ts is not None:
                dated.append((ts, position, _amount(invoice.get('total_amount'))))
        dated.sort(key=lambda item: (item[0], item[1]))
        return [(ts, amount) for ts, _, amount in dated]

    @staticmethod
    def _single_customer_features(customer: Dict[str, Any], invoices, now: pd.Timestamp) -> List[float]:
        amounts = [amount for _, amount in invoices]
        dates = [ts for ts, _ in invoices]

        total_revenue = float(sum(amounts))
        invoice_count = len(invoices)
        days_since_first = _days_between(now, dates[0])
        days_since_last = _days_between(now, dates[-1])

        purchase_frequency = invoice_count / (days_since_first / 30) if days_since_first > 0 else 0.0

        if invoice_count > 1:
            intervals = [_days_between(later, earlier) for earlier, later in zip(dates, dates[1:])]
            avg_days_between = float(np.mean(intervals))
            earliest = amounts[0]
            revenue_trend = (amounts[-1] - earliest) / earliest if earliest != 0 else 0.0
        else:
            avg_days_between = 0.0
            revenue_trend = 0.0

        month_counts = [0] * 12
        for ts in dates:
            month_counts[ts.month - 1] += 1
        seasonal = 1 if _population_variance(month_counts) > 1 else 0

        return [
            total_revenue,
            invoice_count,
            total_revenue / invoice_count,
            days_since_first,
            days_since_last,
            purchase_frequency,
            len(customer.get('contact_histories') or []),
            avg_days_between,
            revenue_trend,
            seasonal,
        ]

    @staticmethod
    def _customer_value_score(invoices, now: pd.Timestamp) -> float:
        """RFM score: recency, frequency and monetary components averaged equally."""
        total_revenue = sum(amount for _, amount in invoices)
        recency_days = _days_between(now, invoices[-1][0])

        recency_score = max(0.0, 1 - recency_days / 365)
        frequency_score = min(1.0, len(invoices) / 10)
        monetary_score = min(1.0, total_revenue / 100000)

        return (recency_score + frequency_score + monetary_score) / 3

    # ==================== BATCH ====================

    def extract(self, target: str, **kwargs) -> TrainingDataset:
        """Run a single extraction target by name."""
        if target not in self.extractors:
            raise UnsupportedStrategyError('extraction target', target, self.extractors)
        return self.extractors[target](**kwargs)

    def extract_all(self, targets: Iterable[str] = None, max_workers: int = None,
                    **kwargs) -> Dict[str, TrainingDataset]:
        """
        Run several extraction targets concurrently.

        Targets read disjoint record sets, so their fetches can overlap. Date
        range keyword arguments (start, end) are forwarded to the targets that
        accept them.

        Args:
            targets: Target names (defaults to all four)
            max_workers: Thread pool size

        Returns:
            Mapping of target name to its TrainingDataset
        """
        targets = list(targets or self.extractors)
        for target in targets:
            if target not in self.extractors:
                raise UnsupportedStrategyError('extraction target', target, self.extractors)

        range_kwargs = {k: v for k, v in kwargs.items() if k in ('start', 'end') and v is not None}
        max_workers = max_workers or self.config['max_workers']

        results = {}
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            future_to_target = {
                executor.submit(
                    self.extractors[target],
                    **(range_kwargs if target in ('sales', 'cashflow') else {})
                ): target
                for target in targets
            }
            for future in as_completed(future_to_target):
                target = future_to_target[future]
                try:
                    results[target] = future.result()
                except Exception as e:
                    logger.error(f"Error extracting {target} features: {e}")
                    raise
                logger.info(f"Finished {target} extraction: {results[target].sample_count} samples")

        return {target: results[target] for target in targets}
