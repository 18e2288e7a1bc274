"""NiceGUI interface - thin visualization layer for the chat.

Responsibilities:
    - Message list with streamed assistant replies rendered as markdown
    - Image attachment and CSV upload
    - Flash/Pro model toggle and New Chat

Delegates every operation to the API over HTTP. Controls are disabled while
a request is in flight.
"""
