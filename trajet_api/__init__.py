"""Trajet API: rider/driver accounts and trajet search over FastAPI + SQLAlchemy."""

__version__ = "1.0.0"
