"""
ZKLend Test Suite
=================

Test organization:
- tests/unit/          - Unit tests, including the Groth16 backend

Run tests:
    pytest                          # All tests
    pytest -m "not slow"            # Skip full-circuit key generation and proving
    pytest --cov=zklend             # With coverage
"""
