import io
import json

import pandas as pd
import pytest
from botocore.exceptions import ClientError

from src.record_store.cloud_utils import StorageHandler
from src.record_store.sources import InMemoryRecordSource, StorageRecordSource, filter_by_date_range


def write_export(base, tenant, entity, payload):
    tenant_dir = base / tenant
    tenant_dir.mkdir(parents=True, exist_ok=True)
    (tenant_dir / f"{entity}.json").write_text(json.dumps(payload))


@pytest.mark.unit
def test_filter_by_date_range_is_inclusive_and_passes_bad_dates():
    records = [
        {"date": "2024-01-01"},
        {"date": "2024-01-31"},
        {"date": "2024-02-01"},
        {"date": "garbage"},
    ]
    selected = filter_by_date_range(records, "date", pd.Timestamp("2024-01-01"), pd.Timestamp("2024-01-31"))
    assert [r["date"] for r in selected] == ["2024-01-01", "2024-01-31", "garbage"]


@pytest.mark.unit
def test_in_memory_source_scopes_by_tenant(record_source, tenant_id):
    assert len(record_source.fetch_customers(tenant_id)) == 2
    assert record_source.fetch_customers("nobody") == []
    assert [p["id"] for p in record_source.fetch_projects(tenant_id, "p4")] == ["p4"]


@pytest.mark.unit
def test_in_memory_source_returns_copies(record_source, tenant_id):
    projects = record_source.fetch_projects(tenant_id)
    projects.clear()
    assert len(record_source.fetch_projects(tenant_id)) == 4


@pytest.mark.unit
def test_storage_source_reads_local_exports(tmp_path):
    write_export(tmp_path, "acme", "invoices", [{"issue_date": "2024-01-05", "total_amount": 10}])
    write_export(tmp_path, "acme", "customers", {"data": [{"id": "c1", "invoices": []}]})
    storage = StorageHandler(None, None, None, None, local_base=str(tmp_path))

    source = StorageRecordSource(storage)

    invoices = source.fetch_invoices("acme", pd.Timestamp("2024-01-01"), pd.Timestamp("2024-12-31"))
    assert invoices == [{"issue_date": "2024-01-05", "total_amount": 10}]
    assert storage.get_last_mode() == "local"
    assert source.fetch_customers("acme") == [{"id": "c1", "invoices": []}]
    assert source.fetch_transactions("acme", None, None) == []


@pytest.mark.unit
def test_storage_source_loads_each_export_once(tmp_path, mocker):
    write_export(tmp_path, "acme", "projects", [{"id": "p1"}])
    storage = StorageHandler(None, None, None, None, local_base=str(tmp_path))
    download = mocker.spy(storage, "download")

    source = StorageRecordSource(storage)
    source.fetch_projects("acme")
    source.fetch_projects("acme", "p1")

    assert download.call_count == 1


@pytest.mark.unit
def test_storage_handler_prefers_bucket(tmp_path, mocker):
    client = mocker.Mock()
    client.get_object.return_value = {"Body": io.BytesIO(b"[]")}
    mocker.patch("src.record_store.cloud_utils.boto3.client", return_value=client)

    storage = StorageHandler("https://s3.example.com", "key", "secret", "records", local_base=str(tmp_path))

    assert storage.download("acme/invoices.json") == b"[]"
    assert storage.get_last_mode() == "cloud"
    client.get_object.assert_called_once_with(Bucket="records", Key="acme/invoices.json")


@pytest.mark.unit
def test_storage_handler_falls_back_to_local(tmp_path, mocker):
    write_export(tmp_path, "acme", "invoices", [])
    client = mocker.Mock()
    client.get_object.side_effect = ClientError({"Error": {"Code": "NoSuchKey"}}, "GetObject")
    mocker.patch("src.record_store.cloud_utils.boto3.client", return_value=client)

    storage = StorageHandler("https://s3.example.com", "key", "secret", "records", local_base=str(tmp_path))

    assert json.loads(storage.download("acme/invoices.json")) == []
    assert storage.get_last_mode() == "local"


@pytest.mark.unit
def test_storage_handler_missing_key(tmp_path):
    storage = StorageHandler(None, None, None, None, local_base=str(tmp_path))

    assert not storage.exists("acme/invoices.json")
    with pytest.raises(FileNotFoundError):
        storage.download("acme/invoices.json")


@pytest.mark.unit
def test_list_prefix_local(tmp_path):
    write_export(tmp_path, "acme", "invoices", [])
    write_export(tmp_path, "acme", "projects", [])
    storage = StorageHandler(None, None, None, None, local_base=str(tmp_path))

    assert storage.list_prefix("acme") == ["acme/invoices.json", "acme/projects.json"]
    assert storage.list_prefix("missing") == []


@pytest.mark.unit
def test_from_env_without_bucket_is_local_only(monkeypatch, tmp_path):
    monkeypatch.delenv("FEATURES_STORAGE_BUCKET", raising=False)

    storage = StorageHandler.from_env(local_base=str(tmp_path))

    assert storage.s3 is None
    assert storage.local_base == str(tmp_path)


@pytest.mark.unit
def test_in_memory_source_default_is_empty():
    source = InMemoryRecordSource()
    assert source.fetch_invoices("t", None, None) == []


@pytest.mark.unit
def test_download_json_unwraps_only_data_envelopes(tmp_path):
    write_export(tmp_path, "acme", "wrapped", {"data": [{"id": 1}]})
    write_export(tmp_path, "acme", "plain", {"id": 2})
    storage = StorageHandler(None, None, None, None, local_base=str(tmp_path))

    assert storage.download_json("acme/wrapped.json") == [{"id": 1}]
    assert storage.download_json("acme/plain.json") == {"id": 2}


@pytest.mark.unit
def test_storage_source_ignores_non_list_exports(tmp_path, caplog):
    write_export(tmp_path, "acme", "customers", {"id": "c1"})
    storage = StorageHandler(None, None, None, None, local_base=str(tmp_path))

    assert StorageRecordSource(storage).fetch_customers("acme") == []
    assert "expected a list of customers" in caplog.text
