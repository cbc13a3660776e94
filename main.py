"""
Freshservice Time Entries ETL

Runs the full pipeline once: Secret Manager -> Freshservice -> BigQuery.
Hydra overrides can be passed on the command line, e.g.:

    python main.py freshservice.batch_size=10 policies.insert=abort
"""

import asyncio
import sys

from dotenv import load_dotenv
from hydra import compose, initialize
from omegaconf import OmegaConf

from etl.dag import freshservice_time_entries_pipeline
from etl.errors import EtlError
from utils.extract_utils import ErrorPolicy, PaginationStop

# --- Configuration Variables ---
load_dotenv()

REQUIRED_SETTINGS = [
    "freshservice.domain",
    "freshservice.filter_tag",
    "secret.project_id",
    "secret.secret_id",
    "bigquery.project_id",
    "bigquery.dataset",
    "bigquery.table",
]


def load_settings(overrides=None):
    """Compose the Hydra config and return it as a plain, resolved dictionary."""
    with initialize(config_path="config/hydra", version_base=None):
        cfg = compose(config_name="config", overrides=overrides or [])
    return OmegaConf.to_container(cfg, resolve=True)


def validate_settings(settings):
    """
    Check that required settings are present and policy names are valid.

    Returns:
        List of problems (empty when the settings are usable)
    """
    problems = []

    for key in REQUIRED_SETTINGS:
        section, name = key.split(".")
        if not settings.get(section, {}).get(name):
            problems.append(f"{key} is not set")

    policies = settings.get("policies", {})
    for name in ["discovery", "collection", "partial_insert", "insert"]:
        try:
            policy = ErrorPolicy.parse(policies.get(name))
        except ValueError as e:
            problems.append(f"policies.{name}: {e}")
            continue
        if name == "discovery" and policy is ErrorPolicy.SKIP_ITEM:
            problems.append("policies.discovery: 'skip-item' is not supported for ticket discovery")

    try:
        PaginationStop.parse(policies.get("pagination_stop"))
    except ValueError as e:
        problems.append(f"policies.pagination_stop: {e}")

    return problems


def main():
    settings = load_settings(sys.argv[1:])

    problems = validate_settings(settings)
    if problems:
        for problem in problems:
            print(f"!!! Error: {problem}")
        sys.exit(1)

    try:
        asyncio.run(freshservice_time_entries_pipeline(settings))
    except EtlError as e:
        print(f"\n❌ Pipeline aborted: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
