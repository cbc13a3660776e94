"""
BigQuery Utilities

Schema and client helpers for the time entries table.
"""

from google.cloud import bigquery


TIME_ENTRIES_SCHEMA = [
    bigquery.SchemaField("ticket_id", "INTEGER"),
    bigquery.SchemaField("id", "INTEGER"),
    bigquery.SchemaField("created_at", "TIMESTAMP"),
    bigquery.SchemaField("updated_at", "TIMESTAMP"),
    bigquery.SchemaField("start_time", "TIMESTAMP"),
    bigquery.SchemaField("timer_running", "BOOLEAN"),
    bigquery.SchemaField("billable", "BOOLEAN"),
    bigquery.SchemaField("time_spent", "STRING"),
    bigquery.SchemaField("executed_at", "TIMESTAMP"),
    bigquery.SchemaField("task_id", "INTEGER"),
    bigquery.SchemaField("workspace_id", "INTEGER"),
    bigquery.SchemaField("note", "STRING"),
    bigquery.SchemaField("agent_id", "INTEGER"),
    bigquery.SchemaField("custom_fields", "STRING"),
]


def get_bigquery_client(project_id=None):
    """
    Create and return a BigQuery client.

    Credentials come from the environment (GOOGLE_APPLICATION_CREDENTIALS or
    the default service account).
    """
    return bigquery.Client(project=project_id)


def build_table_id(project_id, dataset, table):
    """Returns the fully qualified 'project.dataset.table' ID."""
    if not all([project_id, dataset, table]):
        raise ValueError(
            "Missing BigQuery table coordinates. "
            "Please set bigquery.project_id, bigquery.dataset and bigquery.table."
        )
    return f"{project_id}.{dataset}.{table}"
