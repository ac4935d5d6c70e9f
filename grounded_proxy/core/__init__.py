"""Core request pipeline package.

Architectural role:
    Sits between the API/CLI adapters and the upstream client. Owns the data
    contracts, the failure taxonomy, response normalization, and the entry handler.

Composition:
    - `engine`: per-invocation control flow.
    - `errors`: exception classes and error-envelope translation.
    - `normalizer`: upstream JSON -> `{text, sources}`.
    - `types`: shared per-invocation data contracts.

Package import itself is side-effect free.
"""
