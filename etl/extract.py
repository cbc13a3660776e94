"""
Freshservice Extraction Functions

Ticket discovery pages through the ticket filter endpoint sequentially.
Time entry collection fans out one request per ticket, in fixed-size batches
separated by a pause to stay under the API rate limit.

Discovery uses requests: pages depend on each other and are fetched one at a
time. Collection needs many requests in flight at once, so it uses httpx's
async client.
"""

import asyncio

import httpx
import requests

from etl.errors import CollectionRequestError, DiscoveryRequestError
from etl.transform import flatten_time_entries
from utils.extract_utils import (
    ErrorPolicy,
    PaginationStop,
    build_filter_query,
    chunk_list
)


def fetch_all_filtered_tickets(
    domain,
    headers,
    tag,
    workspace_id=2,
    page_size=100,
    timeout=30,
    policy=ErrorPolicy.SKIP_BATCH,
    pagination_stop=PaginationStop.PAGE_FULLNESS
):
    """
    Collects the IDs of every ticket carrying `tag` that belongs to `workspace_id`.

    Pagination continues while a page comes back full (exactly `page_size` raw
    tickets, before the workspace filter). With `pagination_stop=response_total`
    it also stops once the reported total has been paged through.

    Args:
        domain: Freshservice domain (e.g. 'acme.freshservice.com')
        headers: Auth headers from build_auth_headers
        tag: Tag value the filter query matches on
        workspace_id: Only tickets from this workspace are kept
        page_size: Tickets requested per page
        timeout: Request timeout in seconds (None disables it)
        policy: 'skip-batch' stops paging and keeps the partial result on error,
                'abort' raises DiscoveryRequestError
        pagination_stop: 'page_fullness' or 'response_total'

    Returns:
        List of ticket IDs in page order
    """
    policy = ErrorPolicy.parse(policy)
    pagination_stop = PaginationStop.parse(pagination_stop)
    if policy is ErrorPolicy.SKIP_ITEM:
        raise ValueError("Ticket discovery supports only the 'abort' and 'skip-batch' error policies")

    url = f"https://{domain}/api/v2/tickets/filter"
    query = build_filter_query(tag)
    ticket_ids = []
    page = 1

    print(f"\n--- Starting Ticket Discovery ---")
    print(f"-> Filter: {query}, workspace_id={workspace_id}, per_page={page_size}")

    while True:
        params = {"query": query, "page": page, "per_page": page_size}
        print(f"-> Fetching page {page}")

        try:
            response = requests.get(url, headers=headers, params=params, timeout=timeout)
            response.raise_for_status()
            data = response.json()
            tickets = data["tickets"]
            kept = [ticket["id"] for ticket in tickets if ticket.get("workspace_id") == workspace_id]
        except (requests.exceptions.RequestException, ValueError, KeyError, TypeError, AttributeError) as e:
            error = DiscoveryRequestError(page, e)
            if policy is ErrorPolicy.ABORT:
                raise error from e
            print(f"❌ Error fetching tickets: {error}")
            print(f"   Stopping pagination with {len(ticket_ids):,} ticket(s) collected.")
            break

        ticket_ids.extend(kept)
        print(f"   Page {page}: {len(tickets)} tickets, {len(kept)} in workspace. Total tickets: {len(ticket_ids):,}")

        if len(tickets) != page_size:
            break

        total = data.get("total")
        if (
            pagination_stop is PaginationStop.RESPONSE_TOTAL
            and isinstance(total, int)
            and page * page_size >= total
        ):
            break

        page += 1

    print(f"-> Ticket discovery complete: {len(ticket_ids):,} ticket(s) over {page} page(s)")
    return ticket_ids


async def fetch_ticket_time_entries(client, domain, ticket_id):
    """
    Fetches the raw time entries of one ticket.

    Raises:
        CollectionRequestError: on network errors, bad status codes or a malformed body
            (including any time entry that is not a JSON object)
    """
    url = f"https://{domain}/api/v2/tickets/{ticket_id}/time_entries"

    try:
        response = await client.get(url)
        response.raise_for_status()
        entries = response.json()["time_entries"]
    except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
        raise CollectionRequestError(ticket_id, e) from e

    if not isinstance(entries, list):
        raise CollectionRequestError(ticket_id, "time_entries is not a list")
    if not all(isinstance(entry, dict) for entry in entries):
        raise CollectionRequestError(ticket_id, "time_entries contains a non-object element")

    return entries


async def fetch_time_entries_in_batches(
    domain,
    headers,
    ticket_ids,
    batch_size=70,
    pause_seconds=60,
    timeout=30,
    policy=ErrorPolicy.SKIP_ITEM,
    sleep=asyncio.sleep,
    transport=None
):
    """
    Fetches and flattens the time entries of every ticket, batch by batch.

    All requests of a batch run concurrently and the batch finishes only when
    every one of them has completed. Between batches (not after the last one)
    the collector waits `pause_seconds`.

    Args:
        domain: Freshservice domain
        headers: Auth headers from build_auth_headers
        ticket_ids: Ticket IDs from discovery
        batch_size: Tickets per batch
        pause_seconds: Pause between batches
        timeout: Request timeout in seconds (None disables it)
        policy: What a failed ticket request does:
                'skip-item'  - that ticket contributes no rows (default)
                'skip-batch' - the whole batch contributes no rows
                'abort'      - raise CollectionRequestError once the batch is done
        sleep: Awaitable used for the pause
        transport: Optional httpx transport (used by tests)

    Returns:
        List of flat time entry records
    """
    policy = ErrorPolicy.parse(policy)
    batches = chunk_list(list(ticket_ids), batch_size)
    records = []

    print(f"\n--- Starting Time Entry Collection ---")
    print(f"-> {len(ticket_ids):,} ticket(s) in {len(batches)} batch(es) of up to {batch_size}")

    async with httpx.AsyncClient(headers=headers, timeout=timeout, transport=transport) as client:
        for index, batch in enumerate(batches, start=1):
            print(f"-> Batch {index}/{len(batches)}: fetching time entries for {len(batch)} ticket(s)")

            results = await asyncio.gather(
                *(fetch_ticket_time_entries(client, domain, ticket_id) for ticket_id in batch),
                return_exceptions=True
            )

            batch_entries = []
            failures = []
            for ticket_id, result in zip(batch, results):
                if isinstance(result, CollectionRequestError):
                    print(f"❌ Error fetching time entries: {result}")
                    failures.append(result)
                elif isinstance(result, BaseException):
                    raise result
                else:
                    batch_entries.append((ticket_id, result))

            if failures and policy is ErrorPolicy.ABORT:
                raise failures[0]
            if failures and policy is ErrorPolicy.SKIP_BATCH:
                print(f"⚠️  Dropping batch {index}: {len(failures)} request(s) failed")
                batch_entries = []

            batch_records = flatten_time_entries(batch_entries)
            records.extend(batch_records)
            print(f"   Fetched {len(batch_records)} time entries. Total records: {len(records):,}")

            if index < len(batches):
                print(f"-> Pausing {pause_seconds}s for the API rate limit...")
                await sleep(pause_seconds)

    print(f"-> Time entry collection complete: {len(records):,} record(s)")
    return records
