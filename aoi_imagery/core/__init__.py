"""Core utilities and shared infrastructure.

- config: Configuration loading and validation
- constants: Endpoints, MIME types, fixed request parameters
- exceptions: Custom exception hierarchy
"""
