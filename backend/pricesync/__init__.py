# backend/pricesync/__init__.py
"""Investment price synchronization service."""
