"""Pure domain primitives: time and caller identity."""
