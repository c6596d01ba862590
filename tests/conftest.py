import sys
from pathlib import Path

import pytest

# Ensure the project root is importable so tests can use `src.` imports.
root = Path(__file__).resolve().parent.parent
if str(root) not in sys.path:
    sys.path.insert(0, str(root))

from src.record_store.sources import InMemoryRecordSource  # noqa: E402

TENANT = "tenant-1"


@pytest.fixture
def tenant_id():
    return TENANT


@pytest.fixture
def sample_invoices():
    """Two January invoices (100, 200) and one February invoice (150)."""
    return [
        {"id": "inv-3", "issue_date": "2024-02-10", "total_amount": 150, "customer_id": "A",
         "status": "PAID", "items": [{"id": 1}]},
        {"id": "inv-1", "issue_date": "2024-01-05", "total_amount": 100, "customer_id": "A",
         "status": "PAID", "items": [{"id": 1}, {"id": 2}]},
        {"id": "inv-2", "issue_date": "2024-01-20", "total_amount": 200, "customer_id": "B",
         "status": "SENT", "items": []},
        {"id": "inv-4", "issue_date": "2024-01-25", "total_amount": 999, "customer_id": "C",
         "status": "DRAFT"},
        {"id": "inv-5", "issue_date": "not a date", "total_amount": 500, "customer_id": "D",
         "status": "PAID"},
    ]


@pytest.fixture
def sample_transactions():
    return [
        {"date": "2024-01-02", "amount": 100, "type": "INCOME"},
        {"date": "2024-01-03", "amount": -40, "type": "EXPENSE"},
        {"date": "2024-01-04", "amount": 300, "type": "INCOME"},
        {"date": "2024-01-31", "amount": 50, "type": "EXPENSE"},
        {"date": None, "amount": 75, "type": "INCOME"},
    ]


@pytest.fixture
def sample_projects():
    return [
        {
            "id": "p1", "status": "COMPLETED", "start_date": "2024-03-01", "end_date": "2024-03-31",
            "budget": 5000, "members": [{"id": "u1"}, {"id": "u2"}, {"id": "u3"}],
            "tasks": [
                {"id": "t1", "priority": "HIGH", "estimated_hours": 16, "dependencies": []},
                {"id": "t2", "priority": "LOW", "estimated_hours": None, "dependencies": ["t1", "x9"]},
            ],
        },
        {"id": "p2", "status": "ACTIVE", "start_date": "2024-02-01", "end_date": "2024-02-11"},
        {"id": "p3", "status": "COMPLETED", "start_date": "2024-02-01", "end_date": None},
        {"id": "p4", "status": "CANCELLED", "start_date": "2024-01-10", "end_date": "2024-01-20"},
    ]


@pytest.fixture
def sample_customers():
    return [
        {
            "id": "c1",
            "invoices": [
                {"issue_date": "2024-04-01", "total_amount": 300},
                {"issue_date": "2024-01-01", "total_amount": 100},
            ],
            "contact_histories": [{"id": "h1"}, {"id": "h2"}],
        },
        {"id": "c2", "invoices": [], "contact_histories": [{"id": "h3"}]},
    ]


@pytest.fixture
def record_source(sample_invoices, sample_transactions, sample_projects, sample_customers):
    return InMemoryRecordSource({
        TENANT: {
            "invoices": sample_invoices,
            "transactions": sample_transactions,
            "projects": sample_projects,
            "customers": sample_customers,
        },
        "other-tenant": {
            "invoices": [{"issue_date": "2024-01-01", "total_amount": 1, "customer_id": "Z"}],
        },
    })
