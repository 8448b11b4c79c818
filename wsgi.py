"""
WSGI entry point.

Usage:
    flask --app wsgi run
    flask --app wsgi seed-demo
    gunicorn wsgi:app
"""

from eduadmin import create_app

app = create_app()
