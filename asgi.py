"""
asgi.py -- ASGI entry points for the two TaskGate services.

The auth and tasks services are independent apps that run as separate
processes; they share code, not memory. Only this module and main.py import
both.

Run with:  uvicorn asgi:auth_app --port 8080
           uvicorn asgi:tasks_app --port 8082
"""

from api.auth_app import app as auth_app
from api.tasks_app import app as tasks_app

__all__ = ["auth_app", "tasks_app"]
