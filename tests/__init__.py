"""
DoseTrack Test Suite
====================

This package contains all tests for the DoseTrack medication adherence tracker.

Test Structure:
- test_actions/: Pure engine tests (reconciler, reminders, insights, dispatcher)
- test_services/: Service layer tests against in-memory SQLite
- test_api/: API endpoint tests for FastAPI routes
- test_tools/: Time slot table, email and storage tools
- conftest.py: Shared pytest fixtures

Running Tests:
    # Run all tests
    pytest

    # Run specific test module
    pytest tests/test_api/

    # Run only marked tests
    pytest -m "unit"
    pytest -m "api"
"""
