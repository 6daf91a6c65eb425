"""HTTP layer for the statement analysis service."""
