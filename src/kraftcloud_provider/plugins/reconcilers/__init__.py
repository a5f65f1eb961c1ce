"""
Reconciler plugins package.

Reconciler plugins own the reconciliation logic for one or more resource types.
"""

from kraftcloud_provider.plugins.reconcilers.base import (
    ReconcilerPlugin,
    ReconcilerContext,
    ReconcileResult,
)

__all__ = ["ReconcilerPlugin", "ReconcilerContext", "ReconcileResult"]
