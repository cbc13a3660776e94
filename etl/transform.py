"""
Time Entry Transformation Functions

Flattens raw Freshservice time entries into rows matching the BigQuery schema.
"""

import json


TIME_ENTRY_FIELDS = [
    "ticket_id",
    "id",
    "created_at",
    "updated_at",
    "start_time",
    "timer_running",
    "billable",
    "time_spent",
    "executed_at",
    "task_id",
    "workspace_id",
    "note",
    "agent_id",
    "custom_fields",
]


def transform_time_entry(ticket_id, entry):
    """
    Flatten a single time entry into a row.

    Timestamps are passed through untouched. time_spent is always text and
    custom_fields is always a JSON string, whatever shape the API returned.

    Args:
        ticket_id: ID of the ticket the entry belongs to
        entry: Time entry dictionary from the API

    Returns:
        Flat record dictionary
    """
    time_spent = entry.get("time_spent")

    return {
        "ticket_id": ticket_id,
        "id": entry.get("id"),
        "created_at": entry.get("created_at"),
        "updated_at": entry.get("updated_at"),
        "start_time": entry.get("start_time"),
        "timer_running": entry.get("timer_running"),
        "billable": entry.get("billable"),
        "time_spent": "" if time_spent is None else str(time_spent),
        "executed_at": entry.get("executed_at"),
        "task_id": entry.get("task_id"),
        "workspace_id": entry.get("workspace_id"),
        "note": entry.get("note"),
        "agent_id": entry.get("agent_id"),
        "custom_fields": json.dumps(entry.get("custom_fields"), ensure_ascii=False, default=str),
    }


def flatten_time_entries(entries_by_ticket):
    """
    Flatten ticket time entries into a list of records.

    Accepts a {ticket_id: [entry, ...]} mapping or a list of (ticket_id, entries)
    pairs; pairs keep both copies when a ticket ID appears twice.
    Records keep the ticket order, then the API's entry order.
    """
    if hasattr(entries_by_ticket, "items"):
        entries_by_ticket = entries_by_ticket.items()

    flattened_data = []

    for ticket_id, entries in entries_by_ticket:
        for entry in entries:
            flattened_data.append(transform_time_entry(ticket_id, entry))

    return flattened_data
