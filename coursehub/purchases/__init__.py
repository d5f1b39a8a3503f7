"""Purchases, drip content access and refund requests."""
