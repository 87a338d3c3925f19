"""Test package for Document Q&A.

Unit tests for isolated logic and integration tests for HTTP workflows.

Structure:
    - unit/: Individual function and class tests
    - integration/: End-to-end API tests over ASGITransport

Network services are replaced by fakes defined in conftest.py; LanceDB runs
for real in a temporary directory.
Leverages pytest with pytest-check for soft assertions.
"""
