"""
PURPOSE: Rate limiting configuration for the template engine API using slowapi.

Provides a shared Limiter instance keyed by client IP address and
pre-defined rate limit strings for different endpoint categories:
    - GENERATE_LIMIT: strict   (10/minute) - generation and regeneration requests
    - WRITE_LIMIT:    moderate (30/minute) - template updates, catalog writes
    - READ_LIMIT:     relaxed  (60/minute) - list/get endpoints
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

# Shared limiter instance, keyed by client IP
limiter = Limiter(key_func=get_remote_address)

# ── Rate limit tiers ──────────────────────────────────────────
GENERATE_LIMIT = "10/minute"
WRITE_LIMIT = "30/minute"
READ_LIMIT = "60/minute"
