"""Adapters binding the reconciliation core to concrete persistence layers."""
