"""Loyalty JSON endpoints (member, business dashboard and city admin)."""
