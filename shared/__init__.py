"""Shared helpers: signal generators and the parameter schema."""
