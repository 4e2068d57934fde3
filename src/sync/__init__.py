"""Reconciliation engine that mirrors source records into goal-tracker datapoints."""
