"""
OOS WebApp — SQLAlchemy models package.

The shared ``db`` handle lives here so every model module can do
``from oos.models import db`` without importing the app factory.
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
