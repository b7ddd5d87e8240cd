"""
asgi.py -- ASGI entry point for Taskboard.

The only place the process-wide Settings singleton is read. Everything below
create_app() receives its configuration explicitly.

Run with:  uvicorn asgi:app --reload
"""

from api.main import create_app

app = create_app()
