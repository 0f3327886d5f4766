"""
Ledger Sync - Source Package

State reconciliation layer for a personal expense ledger kept in a
tree-structured remote store, keyed by user id.

DESIGN PRINCIPLES:
1. Remote state is normalized before anything else sees it
2. Canonical state only changes after the store confirms a write
3. Related mutations land as one multi-path write
4. Failures surface to the caller, never retried silently
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Ledger Sync Team"
