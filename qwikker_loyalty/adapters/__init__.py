"""Vendor adapters (wallet pass issuer, Slack)."""
