"""Test package for Gemini Chat.

Structure:
    - unit/: Individual function and class tests
    - integration/: HTTP workflow tests against the ASGI app
    - data/: Sample CSV files

The Gemini client is replaced by fakes from conftest.py; tests that need a
live model are skipped without an API key. Leverages pytest with
pytest-check for soft assertions.
"""
