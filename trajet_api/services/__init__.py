"""
High-level use cases for the Trajet API.

Each service module orchestrates the repository and core adapters to implement
business rules (signup, verification, password reset, trajet search, ...).

Routers (FastAPI endpoints) call these services instead of touching the
database or the mailer directly.
"""
