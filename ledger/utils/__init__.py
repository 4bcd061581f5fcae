"""Shared helpers: exceptions, hex parsing, log masking and logging setup."""
