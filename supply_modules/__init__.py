"""Replenishment modules: reorder evaluation, alerting and procurement."""
