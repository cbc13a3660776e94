"""
Load Functions

Functions for replacing the BigQuery time entries table with a fresh extract.
Every run drops the table, recreates it with the fixed schema and streams all
records in one insert call.
"""

import requests
from google.api_core.exceptions import GoogleAPIError, NotFound
from google.cloud import bigquery

from etl.errors import InsertError, PartialInsertError, TableAdminError
from utils.extract_utils import ErrorPolicy
from utils.load_utils import TIME_ENTRIES_SCHEMA, build_table_id, get_bigquery_client


def recreate_table(client, table_id, location="US", schema=None):
    """
    Drop and recreate a table, making sure its dataset exists in `location`.

    A missing table is expected on the first run and only logged.

    Args:
        client: BigQuery client
        table_id: Fully qualified 'project.dataset.table' ID
        location: Dataset location used when the dataset has to be created
        schema: Table schema (defaults to TIME_ENTRIES_SCHEMA)

    Raises:
        TableAdminError: if the dataset, the delete or the create call fails
    """
    schema = schema or TIME_ENTRIES_SCHEMA
    dataset_id = table_id.rsplit(".", 1)[0]

    try:
        dataset = bigquery.Dataset(dataset_id)
        dataset.location = location
        client.create_dataset(dataset, exists_ok=True)
    except GoogleAPIError as e:
        raise TableAdminError(f"Could not ensure dataset {dataset_id}: {e}") from e

    try:
        client.delete_table(table_id)
        print(f"-> Deleted existing table {table_id}")
    except NotFound:
        print(f"-> Table {table_id} not found, nothing to delete")
    except GoogleAPIError as e:
        raise TableAdminError(f"Could not delete table {table_id}: {e}") from e

    try:
        table = client.create_table(bigquery.Table(table_id, schema=schema))
    except GoogleAPIError as e:
        raise TableAdminError(f"Could not create table {table_id}: {e}") from e

    print(f"✅ Created table {table_id} ({len(schema)} columns, location {location})")
    return table


def insert_rows(
    client,
    table_id,
    records,
    partial_policy=ErrorPolicy.SKIP_ITEM,
    insert_policy=ErrorPolicy.SKIP_BATCH
):
    """
    Stream all records into the table in a single insert call.

    Invalid rows are skipped by the warehouse; each one is logged with its
    reasons while the valid rows stay loaded.

    Args:
        client: BigQuery client
        table_id: Fully qualified table ID
        records: List of flat time entry records
        partial_policy: 'skip-item' logs rejected rows and continues,
                        'abort' raises PartialInsertError
        insert_policy: 'skip-batch' logs a failed insert call and continues,
                       'abort' raises InsertError

    Returns:
        Number of rows accepted by the warehouse
    """
    partial_policy = ErrorPolicy.parse(partial_policy)
    insert_policy = ErrorPolicy.parse(insert_policy)

    if not records:
        print(f"⚠️  No records to insert into {table_id}")
        return 0

    print(f"-> Inserting {len(records):,} rows into {table_id}")

    try:
        row_errors = client.insert_rows_json(table_id, records, skip_invalid_rows=True)
    except (GoogleAPIError, requests.exceptions.RequestException) as e:
        error = InsertError(f"Insert into {table_id} failed: {e}")
        if insert_policy is ErrorPolicy.ABORT:
            raise error from e
        print(f"❌ {error}")
        return 0

    if row_errors:
        for row_error in row_errors:
            index = row_error.get("index")
            row = records[index] if isinstance(index, int) and 0 <= index < len(records) else {}
            print(
                f"❌ Rejected row {index} (ticket_id={row.get('ticket_id')}, id={row.get('id')}): "
                f"{row_error.get('errors')}"
            )

        if partial_policy is ErrorPolicy.ABORT:
            raise PartialInsertError(row_errors)

        accepted = len(records) - len(row_errors)
        print(f"⚠️  Inserted {accepted:,} of {len(records):,} rows; {len(row_errors)} rejected")
        return accepted

    print(f"✅ Inserted {len(records):,} rows into {table_id}")
    return len(records)


def insert_data_into_bigquery(
    records,
    project_id,
    dataset,
    table,
    location="US",
    partial_policy=ErrorPolicy.SKIP_ITEM,
    insert_policy=ErrorPolicy.SKIP_BATCH,
    client=None
):
    """
    Replace the destination table with `records`.

    Returns:
        Number of rows accepted by the warehouse
    """
    table_id = build_table_id(project_id, dataset, table)
    if client is None:
        client = get_bigquery_client(project_id)

    print(f"\n--- Loading time entries to BigQuery ---")
    recreate_table(client, table_id, location=location)
    return insert_rows(
        client,
        table_id,
        records,
        partial_policy=partial_policy,
        insert_policy=insert_policy
    )
