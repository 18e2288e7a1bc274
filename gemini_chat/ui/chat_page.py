"""NiceGUI chat interface with SSE streaming support."""

import base64
import os
from collections.abc import AsyncIterator, Callable
from datetime import datetime
from typing import Any

import httpx
from nicegui import events, ui

from gemini_chat.conversation.dispatcher import is_csv_url
from gemini_chat.models.schemas import ModelTier, StreamChunk

API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000")

MODEL_LABELS = {ModelTier.FLASH.value: "Flash", ModelTier.PRO.value: "Pro"}

STATUS_MESSAGES = {
    "received": "Thinking...",
    "loading_dataset": "Loading CSV...",
    "generating": "Generating response...",
}

CUSTOM_CSS = """
<style>
    body { background: #111827; min-height: 100vh; }

    .app-container {
        background: #1f2937;
        border-radius: 12px;
        box-shadow: 0 2px 8px rgba(0, 0, 0, 0.4);
        overflow: hidden;
    }

    .message-user { background: #2563eb; color: white; border-radius: 18px 18px 4px 18px; }
    .message-assistant { background: #374151; color: #e5e7eb; border-radius: 18px 18px 18px 4px; }
    .message-system { background: transparent; color: #9ca3af; font-style: italic; }
    .message-error { background: #7f1d1d; color: #fecaca; }

    .typing-dot {
        width: 8px; height: 8px;
        background: #22d3ee;
        border-radius: 50%;
        animation: bounce 1.4s infinite ease-in-out;
    }
    .typing-dot:nth-child(2) { animation-delay: 0.2s; }
    .typing-dot:nth-child(3) { animation-delay: 0.4s; }

    @keyframes bounce {
        0%, 60%, 100% { transform: translateY(0); }
        30% { transform: translateY(-6px); }
    }

    .message-assistant table { border-collapse: collapse; margin: 0.5rem 0; }
    .message-assistant th, .message-assistant td { border: 1px solid #4b5563; padding: 2px 8px; }
</style>
"""


class PageState:
    """Client-side view of the conversation."""

    def __init__(self) -> None:
        self.messages: list[dict[str, Any]] = []
        self.model: str = ModelTier.FLASH.value
        self.dataset: str | None = None
        self.busy: bool = False
        self.image: dict[str, str] | None = None


async def fetch_messages() -> list[dict[str, Any]]:
    async with httpx.AsyncClient(base_url=API_BASE_URL) as client:
        response = await client.get("/chat/messages")
        response.raise_for_status()
        return response.json()


async def fetch_state() -> dict[str, Any]:
    async with httpx.AsyncClient(base_url=API_BASE_URL) as client:
        response = await client.get("/chat/state")
        response.raise_for_status()
        return response.json()


async def read_chunks(response: httpx.Response) -> AsyncIterator[StreamChunk]:
    """Decode the ``data:`` lines of an SSE response."""
    async for line in response.aiter_lines():
        if line.startswith("data: "):
            yield StreamChunk.model_validate_json(line.removeprefix("data: "))


async def stream_chat_response(
    payload: dict[str, Any],
    on_chunk: Callable[[str], None],
    on_status: Callable[[str], None],
    on_error: Callable[[str], None],
) -> None:
    """Send a turn to /chat/stream and relay its events to the callbacks."""
    async with httpx.AsyncClient(base_url=API_BASE_URL, timeout=None) as client:
        try:
            async with client.stream("POST", "/chat/stream", json=payload) as response:
                if response.status_code == 409:
                    await response.aread()
                    on_error(response.json()["detail"])
                    return
                response.raise_for_status()
                async for chunk in read_chunks(response):
                    if chunk.done:
                        if chunk.error:
                            on_error(chunk.error)
                        return
                    if chunk.status:
                        on_status(chunk.status.value)
                    if chunk.content:
                        on_chunk(chunk.content)
        except httpx.HTTPStatusError as e:
            on_error(f"Request failed (HTTP {e.response.status_code})")
        except httpx.RequestError as e:
            on_error(f"Connection failed: {e}")


@ui.page("/")
async def chat_page() -> None:
    """Main chat page."""
    ui.add_head_html(CUSTOM_CSS)
    ui.dark_mode(True)
    state = PageState()

    messages_container: ui.column
    input_field: ui.textarea
    send_btn: ui.button
    attachment_label: ui.label
    dataset_label: ui.label

    def render_message(msg: dict[str, Any]) -> None:
        role = msg["role"]
        if role == "system":
            css = "message-system message-error" if msg["errored"] else "message-system"
            with ui.row().classes("w-full justify-center"):
                ui.label(msg["content"]).classes(f"text-xs px-3 py-1 rounded {css}")
            return

        is_user = role == "user"
        align = "justify-end" if is_user else "justify-start"
        bubble = "message-user" if is_user else "message-assistant"
        if msg["errored"]:
            bubble += " message-error"
        time = datetime.fromisoformat(msg["created_at"]).strftime("%I:%M %p")

        with ui.row().classes(f"w-full {align}"):
            with ui.column().classes("max-w-[75%] gap-1"):
                with ui.element("div").classes(f"px-4 py-3 {bubble}"):
                    if msg.get("attachment_name"):
                        ui.label(f"Image: {msg['attachment_name']}").classes("text-xs opacity-75")
                    if is_user:
                        ui.label(msg["content"]).classes("text-sm whitespace-pre-wrap")
                    else:
                        ui.markdown(msg["content"], extras=["tables", "fenced-code-blocks"]).classes(
                            "text-sm"
                        )
                ui.label(time).classes(
                    f"text-[10px] text-gray-400 {'self-end' if is_user else 'self-start'}"
                )

    async def refresh_messages() -> None:
        state.messages = await fetch_messages()
        remote = await fetch_state()
        state.model = remote["model"]
        state.dataset = remote["dataset"]
        dataset_label.set_text(f"Dataset: {state.dataset}" if state.dataset else "")
        messages_container.clear()
        with messages_container:
            for msg in state.messages:
                render_message(msg)

    def render_status_indicator(status_text: str = "Thinking...") -> tuple[ui.row, ui.label]:
        """Render status indicator with animated dots and status text."""
        with ui.row().classes("w-full justify-start") as row:
            with ui.element("div").classes("message-assistant px-4 py-3"):
                with ui.row().classes("items-center gap-2"):
                    with ui.row().classes("gap-1"):
                        for _ in range(3):
                            ui.element("div").classes("typing-dot")
                    status_label = ui.label(status_text).classes("text-sm text-gray-400 italic")
        return row, status_label

    def set_busy(busy: bool) -> None:
        state.busy = busy
        for control in (send_btn, input_field, attach_btn, csv_btn, new_btn, model_toggle):
            control.set_enabled(not busy)

    async def send_message() -> None:
        text = (input_field.value or "").strip()
        if (not text and state.image is None) or state.busy:
            return

        payload: dict[str, Any] = {"message": text}
        if state.image is not None:
            payload["image"] = state.image
        input_field.value = ""
        clear_image()
        set_busy(True)

        await refresh_messages()
        with messages_container:
            if payload.get("image") or not is_csv_url(text):
                render_message({
                    "role": "user",
                    "content": text,
                    "created_at": datetime.now().isoformat(),
                    "attachment_name": payload.get("image", {}).get("name"),
                    "errored": False,
                })
            status_row, status_label = render_status_indicator()

        accumulated = ""
        response_view: ui.markdown | None = None

        def on_status(status: str) -> None:
            if status in STATUS_MESSAGES and not accumulated:
                status_label.set_text(STATUS_MESSAGES[status])

        def on_chunk(content: str) -> None:
            nonlocal accumulated, response_view
            if response_view is None:
                status_row.delete()
                with messages_container, ui.row().classes("w-full justify-start"):
                    with ui.element("div").classes("message-assistant px-4 py-3 max-w-[75%]"):
                        response_view = ui.markdown("", extras=["tables", "fenced-code-blocks"]).classes(
                            "text-sm"
                        )
            accumulated += content
            response_view.set_content(accumulated)

        def on_error(error: str) -> None:
            ui.notify(error, type="negative")

        try:
            await stream_chat_response(payload, on_chunk, on_status, on_error)
        finally:
            set_busy(False)
            await refresh_messages()

    async def handle_image(e: events.UploadEventArguments) -> None:
        data = await e.file.read()
        state.image = {
            "name": e.file.name,
            "mime_type": e.file.content_type or "image/png",
            "data": base64.b64encode(data).decode("ascii"),
        }
        attachment_label.set_text(f"Image: {e.file.name}")
        image_upload.reset()

    def clear_image() -> None:
        state.image = None
        attachment_label.set_text("")

    async def handle_csv(e: events.UploadEventArguments) -> None:
        data = await e.file.read()
        csv_upload.reset()
        set_busy(True)
        try:
            async with httpx.AsyncClient(base_url=API_BASE_URL, timeout=None) as client:
                response = await client.post(
                    "/upload/csv",
                    files={"file": (e.file.name, data, "text/csv")},
                )
            if response.status_code != 200:
                ui.notify(response.json().get("detail", "CSV upload failed"), type="negative")
        except httpx.RequestError as exc:
            ui.notify(f"Connection failed: {exc}", type="negative")
        finally:
            set_busy(False)
            await refresh_messages()

    async def new_chat() -> None:
        async with httpx.AsyncClient(base_url=API_BASE_URL) as client:
            await client.post("/chat/new")
        clear_image()
        await refresh_messages()

    async def change_model(e: events.ValueChangeEventArguments) -> None:
        if e.value == state.model:
            return
        async with httpx.AsyncClient(base_url=API_BASE_URL) as client:
            await client.put("/chat/model", json={"model": e.value})
        state.model = e.value

    # === UI Layout ===
    image_upload = (
        ui.upload(on_upload=handle_image, auto_upload=True, max_files=1)
        .props("accept='image/png,image/jpeg'")
        .classes("hidden")
    )
    csv_upload = (
        ui.upload(on_upload=handle_csv, auto_upload=True, max_files=1)
        .props("accept=.csv")
        .classes("hidden")
    )

    with (
        ui.element("div").classes("w-full min-h-screen p-4 md:p-8"),
        ui.column().classes("w-full max-w-4xl mx-auto app-container").style(
            "height: calc(100vh - 4rem)"
        ),
    ):
        # Header
        with ui.row().classes("w-full bg-gray-900 px-5 py-3 items-center justify-between"):
            ui.label("Gemini Chat").classes("text-xl font-bold text-cyan-400")
            with ui.row().classes("items-center gap-2"):
                new_btn = ui.button("New Chat", icon="add_comment", on_click=new_chat).props(
                    "flat color=white"
                )
                csv_btn = ui.button(
                    "Upload CSV",
                    icon="note_add",
                    on_click=lambda: csv_upload.run_method("pickFiles"),
                ).props("flat color=white")

        # Messages
        with (
            ui.scroll_area().classes("flex-grow w-full"),
            ui.column().classes("w-full p-5"),
        ):
            messages_container = ui.column().classes("w-full gap-4")

        # Input
        with ui.column().classes("w-full p-4 gap-2 bg-gray-900 border-t border-gray-700"):
            attachment_label = ui.label("").classes("text-sm text-gray-300")
            with ui.row().classes("w-full gap-3 items-end"):
                input_field = (
                    ui.textarea(placeholder="Type a message, paste a CSV link, or upload an image...")
                    .props("autogrow borderless dense rows=1 dark")
                    .classes("flex-grow")
                    .on("keydown.enter.exact.prevent", send_message)
                )
                attach_btn = ui.button(
                    icon="attach_file",
                    on_click=lambda: image_upload.run_method("pickFiles"),
                ).props("flat round color=grey")
                send_btn = ui.button(icon="send", on_click=send_message).props(
                    "round unelevated color=primary"
                )
            with ui.row().classes("w-full justify-between items-center"):
                dataset_label = ui.label("").classes("text-xs text-gray-400")
                with ui.row().classes("items-center gap-2"):
                    ui.label("Model:").classes("text-xs text-gray-400")
                    model_toggle = ui.toggle(
                        MODEL_LABELS, value=state.model, on_change=change_model
                    ).props("dense no-caps size=sm")

    await refresh_messages()
    model_toggle.value = state.model


def main() -> None:
    ui.run(title="Gemini Chat", port=int(os.getenv("UI_PORT", "8080")), reload=False)


if __name__ == "__main__":
    main()
