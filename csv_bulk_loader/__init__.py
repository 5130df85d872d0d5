"""Load a CSV file into a PostgreSQL table in batched transactions."""

__version__ = "1.0.0"
