"""
extensions.py — Flask extension singletons.

Pattern:
    1. Create the extension object here (no app attached yet).
    2. Call init_app(app) inside the app factory in app/__init__.py.
    3. Import `db` or `ma` from here wherever needed.

Request schemas (app/schemas/*_schema.py) inherit from marshmallow.Schema
directly so unit tests can load them without an application. Response
schemas use ma.Schema and are only dumped inside request handlers.
"""

from flask_marshmallow import Marshmallow
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

ma = Marshmallow()
