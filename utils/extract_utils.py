import base64
from enum import Enum


class ErrorPolicy(str, Enum):
    """What a stage does with a failed request."""

    ABORT = "abort"
    SKIP_ITEM = "skip-item"
    SKIP_BATCH = "skip-batch"

    @classmethod
    def parse(cls, value):
        """Accepts either an ErrorPolicy or its config string ('skip_item' works too)."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower().replace("_", "-"))
        except ValueError:
            allowed = ", ".join(p.value for p in cls)
            raise ValueError(f"Unknown error policy '{value}'. Expected one of: {allowed}")


class PaginationStop(str, Enum):
    """How ticket discovery decides there are no more pages."""

    PAGE_FULLNESS = "page_fullness"
    RESPONSE_TOTAL = "response_total"

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower().replace("-", "_"))
        except ValueError:
            allowed = ", ".join(p.value for p in cls)
            raise ValueError(f"Unknown pagination stop rule '{value}'. Expected one of: {allowed}")


def build_auth_headers(api_key, workspace_id):
    """
    Builds the headers sent with every Freshservice request.

    Freshservice uses Basic auth with the API key as username and any password
    ("X" by convention). The _x_w cookie selects the workspace context.

    Args:
        api_key: Freshservice API key
        workspace_id: Workspace the requests are scoped to

    Returns:
        Dictionary of HTTP headers
    """
    token = base64.b64encode(f"{api_key}:X".encode("utf-8")).decode("ascii")
    return {
        "Authorization": f"Basic {token}",
        "Content-Type": "application/json",
        "Cookie": f"_x_w={workspace_id}",
    }


def build_filter_query(tag):
    """Returns the quoted filter query Freshservice expects, e.g. "tag:'billing'"."""
    return f"\"tag:'{tag}'\""


def chunk_list(items, size):
    """Splits a list into consecutive chunks of at most `size` items, keeping order."""
    if size < 1:
        raise ValueError("Chunk size must be at least 1")
    return [items[i:i + size] for i in range(0, len(items), size)]
