"""Job task protocol, registry and the replenishment tasks."""
