"""Ordered conversation history with message lifecycle flags."""

from collections.abc import Iterable

from gemini_chat.models.schemas import ImageAttachment, Message, Role

GREETING = (
    "Hello! How can I help you today? You can ask me anything, upload an image, "
    "or provide a CSV file for analysis by pasting its URL or uploading it."
)


class ConversationStore:
    """Ordered sequence of messages; insertion order is display order.

    At most one message is pending at a time. A pending message's content can
    only grow by appending; once it stops pending its content is frozen.
    """

    def __init__(self, greeting: str | None = GREETING) -> None:
        self._greeting = greeting
        self._messages: list[Message] = []
        self.reset()

    @property
    def messages(self) -> list[Message]:
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def reset(self) -> None:
        """Drop every message and restore the greeting."""
        self._messages = []
        if self._greeting:
            self.add(Role.ASSISTANT, self._greeting)

    def get(self, message_id: str) -> Message:
        for message in self._messages:
            if message.id == message_id:
                return message
        raise KeyError(message_id)

    def pending_message(self) -> Message | None:
        for message in self._messages:
            if message.pending:
                return message
        return None

    def add(
        self,
        role: Role,
        content: str,
        attachment: ImageAttachment | None = None,
        errored: bool = False,
    ) -> Message:
        """Append a finished message."""
        message = Message(role=role, content=content, attachment=attachment, errored=errored)
        self._messages.append(message)
        return message

    def add_placeholder(self) -> Message:
        """Append the in-flight assistant message.

        Raises:
            RuntimeError: If another message is still pending.
        """
        if self.pending_message() is not None:
            raise RuntimeError("A reply is already pending")
        message = Message(role=Role.ASSISTANT, pending=True, loading=True)
        self._messages.append(message)
        return message

    def append(self, message_id: str, text: str) -> Message:
        """Append streamed text to the pending message and clear its loading flag."""
        message = self.get(message_id)
        if not message.pending:
            raise RuntimeError(f"Message {message_id} is no longer pending")
        message.content += text
        message.loading = False
        return message

    def finish(self, message_id: str) -> Message:
        message = self.get(message_id)
        message.pending = False
        message.loading = False
        return message

    def fail(self, message_id: str, notice: str) -> Message:
        """Replace a message's content with an error notice and finish it."""
        message = self.get(message_id)
        message.content = notice
        message.errored = True
        message.pending = False
        message.loading = False
        return message

    def history(self, exclude: Iterable[str] = ()) -> list[Message]:
        """Prior user/assistant turns fit for replay to the model.

        Pending, errored and empty messages are left out, as are the ids in
        ``exclude``.
        """
        excluded = set(exclude)
        return [
            message
            for message in self._messages
            if message.role in (Role.USER, Role.ASSISTANT)
            and message.id not in excluded
            and not message.pending
            and not message.errored
            and message.content
        ]

    def turns(self, exclude: Iterable[str] = ()) -> list[Message]:
        """All prior non-empty user/assistant turns except the ids in ``exclude``.

        Errored turns are kept; the service rejects empty text parts.
        """
        excluded = set(exclude)
        return [
            message
            for message in self._messages
            if message.role in (Role.USER, Role.ASSISTANT)
            and message.id not in excluded
            and message.content
        ]
