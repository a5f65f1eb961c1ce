"""Reconciler plugin for KraftCloud instances."""

from kraftcloud_provider.plugins.reconcilers.instance.reconciler import (
    InstanceReconciler,
)

__all__ = ["InstanceReconciler"]
