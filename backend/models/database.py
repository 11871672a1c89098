"""
Shared Flask-SQLAlchemy handle.

All HSSE record models subclass db.Model. The dashboard engine never writes
through these models; it only reads them via sessions from its own
session factory.
"""
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
