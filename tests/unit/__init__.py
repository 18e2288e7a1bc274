"""Unit tests for individual components in isolation.

Coverage:
    - parsing/: CSV size ceiling, decoding and relay errors
    - conversation/: dispatcher, store, grounding, accumulator, coordinator
    - agent/: configuration and the Gemini client wrapper

Uses fakes for the model service and httpx.MockTransport for the CSV relay.
"""
