"""
CLI entry point using Typer.

Provides commands for playing home-training sessions:
- fetch: Generate today's plan through the API and cache it
- show-plan: Display a plan
- run: Play a session with the work/rest timer and save its summary
- history: Show locally logged or pending sessions
- retry: Resubmit sessions whose submission failed
"""

from .app import app
from .commands import history, plans, session  # noqa: F401  (register commands)

__all__ = ["app"]


if __name__ == "__main__":
    app()
