from types import SimpleNamespace

import httpx
import pytest
import requests
from google.api_core.exceptions import NotFound
from prefect.testing.utilities import prefect_test_harness

import etl.extract


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, payload=None, status_code=200):
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} Error")

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeTicketApi:
    """Serves ticket filter pages and records every request made."""

    def __init__(self, pages):
        # pages: list of FakeResponse or Exception, indexed by page - 1
        self.pages = pages
        self.requests = []

    def get(self, url, headers=None, params=None, timeout=None):
        self.requests.append({"url": url, "headers": headers, "params": params, "timeout": timeout})
        page = params["page"]
        if page > len(self.pages):
            return FakeResponse({"tickets": []})
        result = self.pages[page - 1]
        if isinstance(result, Exception):
            raise result
        return result


def make_ticket_pages(workspace_ids, page_size=100, with_total=False):
    """Splits a list of workspace IDs into filter pages of tickets numbered from 1."""
    tickets = [{"id": i + 1, "workspace_id": ws} for i, ws in enumerate(workspace_ids)]
    pages = []
    for start in range(0, len(tickets), page_size):
        body = {"tickets": tickets[start:start + page_size]}
        if with_total:
            body["total"] = len(tickets)
        pages.append(FakeResponse(body))
    return pages


@pytest.fixture
def ticket_api(monkeypatch):
    """Installs a FakeTicketApi in place of requests.get; call it with the pages."""

    def install(pages):
        api = FakeTicketApi(pages)
        monkeypatch.setattr(etl.extract.requests, "get", api.get)
        return api

    return install


def make_time_entry(entry_id, **overrides):
    entry = {
        "id": entry_id,
        "created_at": "2024-03-01T10:00:00Z",
        "updated_at": "2024-03-01T11:00:00Z",
        "start_time": "2024-03-01T09:00:00Z",
        "timer_running": False,
        "billable": True,
        "time_spent": "01:30",
        "executed_at": "2024-03-01T09:00:00Z",
        "task_id": None,
        "workspace_id": 2,
        "note": "Investigated outage",
        "agent_id": 42,
        "custom_fields": {"project": "alpha"},
    }
    entry.update(overrides)
    return entry


class TimeEntriesApi:
    """httpx handler serving /tickets/<id>/time_entries, logging calls in order."""

    def __init__(self, entries_per_ticket=1, failing=(), malformed=(), log=None):
        self.entries_per_ticket = entries_per_ticket
        self.failing = set(failing)
        self.malformed = set(malformed)
        self.log = log if log is not None else []
        self.headers = []

    def __call__(self, request):
        ticket_id = int(request.url.path.split("/")[-2])
        self.log.append(ticket_id)
        self.headers.append(request.headers)
        if ticket_id in self.failing:
            return httpx.Response(500, json={"description": "Internal error"})
        if ticket_id in self.malformed:
            return httpx.Response(200, json={"time_entries": [make_time_entry(ticket_id * 1000), None]})
        entries = [
            make_time_entry(ticket_id * 1000 + n)
            for n in range(self.entries_per_ticket)
        ]
        return httpx.Response(200, json={"time_entries": entries})

    @property
    def transport(self):
        return httpx.MockTransport(self)


class FakeSleep:
    """Async sleep replacement that records pauses (optionally into a shared log)."""

    def __init__(self, log=None):
        self.calls = []
        self.log = log

    async def __call__(self, seconds):
        self.calls.append(seconds)
        if self.log is not None:
            self.log.append("pause")


class FakeBigQueryClient:
    """In-memory BigQuery client covering the calls the loader makes."""

    def __init__(self, existing_tables=(), delete_error=None, create_error=None,
                 insert_exception=None, reject=None):
        self.tables = {table_id: [] for table_id in existing_tables}
        self.schemas = {}
        self.datasets = []
        self.calls = []
        self.delete_error = delete_error
        self.create_error = create_error
        self.insert_exception = insert_exception
        # reject: function(row) -> reason string or None
        self.reject = reject

    def create_dataset(self, dataset, exists_ok=False):
        self.calls.append("create_dataset")
        self.datasets.append((f"{dataset.project}.{dataset.dataset_id}", dataset.location, exists_ok))
        return dataset

    def delete_table(self, table_id):
        self.calls.append("delete_table")
        if self.delete_error is not None:
            raise self.delete_error
        if table_id not in self.tables:
            raise NotFound(f"Not found: Table {table_id}")
        del self.tables[table_id]

    def create_table(self, table):
        self.calls.append("create_table")
        if self.create_error is not None:
            raise self.create_error
        table_id = f"{table.project}.{table.dataset_id}.{table.table_id}"
        self.tables[table_id] = []
        self.schemas[table_id] = [(field.name, field.field_type) for field in table.schema]
        return table

    def insert_rows_json(self, table_id, rows, skip_invalid_rows=False):
        self.calls.append("insert_rows_json")
        if self.insert_exception is not None:
            raise self.insert_exception
        errors = []
        valid = []
        for index, row in enumerate(rows):
            reason = self.reject(row) if self.reject else None
            if reason:
                errors.append({"index": index, "errors": [{"reason": "invalid", "message": reason}]})
            else:
                valid.append(row)
        if not errors or skip_invalid_rows:
            self.tables[table_id].extend(valid)
        return errors


class FakeSecretClient:
    def __init__(self, payload=b"api-key-123", error=None):
        self.payload = payload
        self.error = error
        self.requests = []

    def access_secret_version(self, request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(payload=SimpleNamespace(data=self.payload))


@pytest.fixture(scope="session")
def prefect_backend():
    """Runs flows against a temporary Prefect database."""
    with prefect_test_harness():
        yield
