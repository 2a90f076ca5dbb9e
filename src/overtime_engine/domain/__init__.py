"""Entry, expense and rollup value types."""
