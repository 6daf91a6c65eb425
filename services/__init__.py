"""
Service layer for business logic.

This package contains the service that orchestrates the statement
pipeline: upload validation, extraction, categorization, validation
and report rendering.
"""
