"""
Plugin system for the KraftCloud provider.

This package provides the reconciler plugin contract and the instance
reconciler built on it.
"""

from kraftcloud_provider.plugins.reconcilers.base import (
    ReconcilerPlugin,
    ReconcilerContext,
    ReconcileResult,
)

__all__ = [
    "ReconcilerPlugin",
    "ReconcilerContext",
    "ReconcileResult",
]
