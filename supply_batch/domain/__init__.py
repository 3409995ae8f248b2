"""Pure batch types and schedule evaluation. No I/O."""
