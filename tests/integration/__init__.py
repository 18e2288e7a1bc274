"""Integration tests for the HTTP API working as a system.

Coverage:
    - SSE chat streaming through the coordinator
    - CSV upload and dataset-grounded follow-up turns
    - Live Gemini responses (when GEMINI_API_KEY is configured)
"""
