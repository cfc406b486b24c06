"""FastAPI server entry point for the Reminder Scheduler."""

import uvicorn

from .config import get_settings


def main():
    """Run the FastAPI server."""
    settings = get_settings()

    uvicorn.run(
        "reminder_server.app:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=False,
        log_level="info"
    )


if __name__ == "__main__":
    main()
