"""
Test fixtures for the gateway test suite.

This package provides centralized test fixtures to eliminate duplication
and ensure consistency across all test files.
"""

from tests.fixtures.backend_responses import (
    create_backend_payload,
    MOCK_BACKEND_ANSWER_ONLY,
    MOCK_BACKEND_WITH_REASONING,
)

__all__ = [
    "MOCK_BACKEND_ANSWER_ONLY",
    "MOCK_BACKEND_WITH_REASONING",
    "create_backend_payload",
]
