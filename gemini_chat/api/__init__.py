"""FastAPI endpoints for the Gemini chat.

HTTP and streaming routes with async request handling.
Supports Server-Sent Events for real-time chat streaming.

Endpoints:
    - GET /health: Service health status
    - POST /chat/stream: Streamed answer to a user turn
    - GET /chat/messages: Conversation history
    - GET /chat/state: Selected model, loaded dataset, busy flag
    - PUT /chat/model: Model tier selection
    - POST /chat/new: New conversation
    - POST /upload/csv: CSV dataset upload
"""

from gemini_chat.api.app import app, create_app

__all__ = ["app", "create_app"]
