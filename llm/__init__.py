"""
LLM integration for statement categorization.

This package contains:
- categorize: Statement categorization request
- client: Gemini REST client and response cleanup
- prompts: Versioned instruction text and request parts
"""
