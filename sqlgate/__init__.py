"""
SQL Gate backend.

Runs peer-reviewed SQL change scripts against staging and production
databases under a staging-first promotion policy, with an append-only
execution audit trail.
"""

__version__ = "0.1.0"
