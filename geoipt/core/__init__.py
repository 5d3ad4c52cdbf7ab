"""Core utilities and shared infrastructure.

- config: Configuration loading and validation
- constants: Catalog layout names, file extensions, query status tags
- context: Per-query session object (config, storage, geometry cache)
- exceptions: Custom exception hierarchy
- ingress: Request-parameter parsing for the HTTP entry points
"""
