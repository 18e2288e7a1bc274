"""Gemini Chat - a browser chat client for Google's Gemini models.

Combines FastAPI for HTTP streaming, the Google GenAI SDK for generation,
NiceGUI for the chat page, pandas for CSV datasets, and Pydantic for
data validation.

Components:
    - api: HTTP endpoints and streaming responses
    - agent: Gemini client wrapper and configuration
    - conversation: Mode dispatch, message store and stream accumulation
    - parsing: CSV fetching and decoding
    - ui: Web interface for chat interactions
    - models: Request/response schemas
"""

__version__ = "0.1.0"
