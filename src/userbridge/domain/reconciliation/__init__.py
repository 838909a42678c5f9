"""Reconciliation of identity-store pages with local account records.

Flow for one search:
1) fetch one page from the identity store (the only page boundary)
2) filter and sort that page in-process
3) provision local records for identities seen for the first time
4) load the local halves in one batch and merge, keeping the order
5) apply filters on local-only fields to the merged page
"""

from __future__ import annotations

from .identity_view import filter_identities, sort_identities
from .merge import index_by_external_id, merge_account, merge_page
from .provisioning import provision_missing
from .search import find_local_accounts, get_account, search_accounts

__all__ = [
    "filter_identities",
    "find_local_accounts",
    "get_account",
    "index_by_external_id",
    "merge_account",
    "merge_page",
    "provision_missing",
    "search_accounts",
    "sort_identities",
]
