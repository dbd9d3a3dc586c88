"""
Auto-mark all tests in this directory as integration tests.

These check properties that span several artifacts: the same names,
ports and paths must appear in the Jenkinsfile, the deploy script,
main.tf and docker-compose.yml.

Run ONLY integration tests:
    pytest tests/integration/ -m integration

Run ONLY unit tests:
    pytest -m "not integration"
"""

import pytest


def pytest_collection_modifyitems(items):
    """Auto-apply the 'integration' marker to every test in this directory."""
    for item in items:
        if "/integration/" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
