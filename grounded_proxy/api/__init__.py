"""Grounded proxy adapter package.

Architectural role:
- Defines the external interaction boundary for HTTP and CLI interfaces.
- Performs transport-level request validation.
- Delegates the upstream call and normalization to the core layer.
"""
