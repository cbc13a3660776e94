"""
Freshservice Time Entries Pipeline DAG

This module defines a Prefect flow that runs the whole extract-and-load job.

Pipeline Structure:
1. Fetch the Freshservice API key from Secret Manager
2. Discover tagged tickets in the target workspace
3. Collect the time entries of every discovered ticket (batched, rate limited)
4. Replace the BigQuery table with the collected rows

Each step feeds the next one; nothing is kept between runs.
"""

from prefect import flow, task

from etl.extract import fetch_all_filtered_tickets, fetch_time_entries_in_batches
from etl.load import insert_data_into_bigquery
from utils.extract_utils import build_auth_headers
from utils.secret_utils import fetch_secret


@task(name="fetch_api_key", log_prints=True, persist_result=False)
def fetch_api_key(secret_settings: dict) -> str:
    """Read the Freshservice API key from Secret Manager."""
    return fetch_secret(
        secret_settings["project_id"],
        secret_settings["secret_id"],
        secret_settings.get("version", "latest")
    )


@task(name="discover_tickets", log_prints=True, persist_result=False)
def discover_tickets(api_key: str, settings: dict) -> list:
    """Collect the IDs of tagged tickets in the target workspace."""
    fs = settings["freshservice"]
    policies = settings["policies"]
    return fetch_all_filtered_tickets(
        fs["domain"],
        build_auth_headers(api_key, fs["workspace_id"]),
        fs["filter_tag"],
        workspace_id=fs["workspace_id"],
        page_size=fs["page_size"],
        timeout=settings["http"]["timeout_seconds"],
        policy=policies["discovery"],
        pagination_stop=policies["pagination_stop"]
    )


@task(name="collect_time_entries", log_prints=True, persist_result=False)
async def collect_time_entries(api_key: str, ticket_ids: list, settings: dict) -> list:
    """Fetch and flatten the time entries of every ticket."""
    fs = settings["freshservice"]
    return await fetch_time_entries_in_batches(
        fs["domain"],
        build_auth_headers(api_key, fs["workspace_id"]),
        ticket_ids,
        batch_size=fs["batch_size"],
        pause_seconds=fs["batch_pause_seconds"],
        timeout=settings["http"]["timeout_seconds"],
        policy=settings["policies"]["collection"]
    )


@task(name="load_time_entries", log_prints=True, persist_result=False)
def load_time_entries(records: list, settings: dict) -> int:
    """Replace the BigQuery table with the collected records."""
    bq = settings["bigquery"]
    policies = settings["policies"]
    return insert_data_into_bigquery(
        records,
        bq["project_id"],
        bq["dataset"],
        bq["table"],
        location=bq["location"],
        partial_policy=policies["partial_insert"],
        insert_policy=policies["insert"]
    )


@flow(name="freshservice_time_entries_pipeline", log_prints=True)
async def freshservice_time_entries_pipeline(settings: dict):
    """
    Main ETL pipeline flow.

    Args:
        settings: Resolved configuration (see config/hydra/config.yaml)

    Returns:
        Summary dictionary with ticket, record and inserted row counts
    """
    print("=" * 80)
    print("Starting Freshservice Time Entries Pipeline")
    print("=" * 80)

    print("\n[Step 1] Fetching API key...")
    api_key = fetch_api_key(settings["secret"])

    print("\n[Step 2] Discovering tickets...")
    ticket_ids = discover_tickets(api_key, settings)

    print("\n[Step 3] Collecting time entries...")
    records = await collect_time_entries(api_key, ticket_ids, settings)

    print("\n[Step 4] Loading time entries to BigQuery...")
    inserted = load_time_entries(records, settings)

    print("\n" + "=" * 80)
    print(f"✅ Pipeline completed: {len(ticket_ids):,} tickets, {len(records):,} records, {inserted:,} rows loaded")
    print("=" * 80)

    return {
        "tickets": len(ticket_ids),
        "records": len(records),
        "inserted": inserted,
    }
