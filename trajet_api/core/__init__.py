"""
Core utilities shared across the Trajet API.

This package hosts configuration, logging, the mailer adapter and the
security primitives (password hashing, random secrets, bearer tokens).
Services depend on these instead of reaching for os.environ or raw crypto.
"""
