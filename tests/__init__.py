"""
Test suite for the employee bulk upload service.

Run all tests: pytest
Run unit tests only: pytest tests/unit/
Run specific file: pytest tests/unit/test_upload_orchestrator.py -v
"""
