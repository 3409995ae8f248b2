"""Supply kernel: persistence, identity, logging and read-side primitives for the replenishment pipeline."""

__version__ = "0.1.0"
