"""
BANWATCH Test Suite
===================

Test organization:
- tests/unit/          - Unit tests for the shared library
- tests/services/      - Service tests (no network access)

Run tests:
    pytest                          # All tests
    pytest tests/unit               # Unit tests only
    pytest --cov=services           # With coverage
"""
