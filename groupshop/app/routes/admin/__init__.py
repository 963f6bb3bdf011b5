"""Админский REST (X-Admin-Api-Key)."""
