"""Constants for tests."""

TEST_LINSTOR_URL = "http://linstor.example.com:3370"
"""Base URL of the mock LINSTOR controller in the standard configuration."""

TEST_VOLUME_ID = "00000000-0000-4000-8000-000000000000"
"""Identifier returned by the test ID factory."""
