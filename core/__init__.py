"""
Core processing modules for statement analysis.

This package contains:
- aggregation: Totals and per-category breakdown
- config: Application configuration and settings
- exceptions: Custom exception classes
- exporters: Excel report rendering
- extraction: PDF text extraction and document strategies
- logger: Logging configuration
- normalize: Amount and date normalization
- schema: Pydantic models and the category set
- validation: Categorization response validation
"""
