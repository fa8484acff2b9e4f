"""
Roadmap Platform
SQLAlchemy models.

The ``db`` handle is created here and bound to the app in ``create_app``;
model modules import it as ``from roadmap_platform.models import db``.
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
