"""Event catalogue: date handling, queries and domain errors."""
