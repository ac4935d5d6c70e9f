"""Prompting package.

Builds the fixed upstream request body from a validated prompt. It does not
perform validation, transport, or retries.
"""
