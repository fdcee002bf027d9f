"""
Test suite for the catalog sync backend.

Run all tests: pytest
Run unit tests only: pytest tests/unit/
Run specific file: pytest tests/unit/test_sync_service.py -v
"""
