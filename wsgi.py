"""
WSGI entry point and Flask-Migrate / Alembic app target.

Usage:
    gunicorn wsgi:app
    flask --app wsgi db migrate -m "description"
    flask --app wsgi db upgrade
"""

from oos import create_app

app = create_app()
