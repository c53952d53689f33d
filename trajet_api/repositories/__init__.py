"""
Persistence adapters.

Services depend on the repository instead of opening SQLAlchemy sessions
themselves; the repository is generic over the model class so principals and
trajets share the same find/insert/update/delete vocabulary.
"""
