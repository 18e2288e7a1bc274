"""Gemini Chat entry point.

Serves the API and the NiceGUI chat page from one uvicorn process by default.
With ``RUN_MODE=separate`` the UI runs on its own port and talks to the API
over HTTP at ``API_BASE_URL``.
"""

import logging
import os
import sys

from dotenv import load_dotenv

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))
UI_PORT = int(os.getenv("UI_PORT", "8080"))


def run_integrated() -> None:
    """Mount the chat page onto the API app and serve both on ``PORT``."""
    import uvicorn
    from nicegui import ui

    from gemini_chat.api.app import create_app
    from gemini_chat.ui.chat_page import chat_page  # noqa: F401 - registers the page

    app = create_app()
    ui.run_with(
        app,
        title="Gemini Chat",
        storage_secret=os.getenv("NICEGUI_STORAGE_SECRET", "gemini-chat-secret"),
    )

    logger.info(f"Chat UI on http://localhost:{PORT}/, API docs on http://localhost:{PORT}/docs")
    uvicorn.run(app, host=HOST, port=PORT, log_level=os.getenv("LOG_LEVEL", "info").lower())


def run_separate() -> None:
    """Run the API and the chat page as two child processes.

    Stops both as soon as either exits.
    """
    import asyncio
    import subprocess

    commands = [
        [sys.executable, "-m", "uvicorn", "gemini_chat.api.app:app", "--host", HOST, "--port", str(PORT)],
        [sys.executable, "-c", "from gemini_chat.ui.chat_page import main; main()"],
    ]

    async def supervise() -> None:
        logger.info(f"API on http://localhost:{PORT}, chat UI on http://localhost:{UI_PORT}")
        processes = [subprocess.Popen(command) for command in commands]
        try:
            while all(process.poll() is None for process in processes):
                await asyncio.sleep(1)
        except KeyboardInterrupt:
            logger.info("Shutting down servers...")
        finally:
            for process in processes:
                process.terminate()
            for process in processes:
                process.wait()

    asyncio.run(supervise())


def main() -> None:
    """Start Gemini Chat in the mode named by ``RUN_MODE`` (default ``integrated``)."""
    mode = os.getenv("RUN_MODE", "integrated").lower()
    logger.info(f"Starting Gemini Chat in {mode} mode")

    if mode == "separate":
        run_separate()
    else:
        run_integrated()


if __name__ == "__main__":
    main()
