"""
Module: config
Description: Package initialization for configuration.

- settings: pydantic-settings models for the application and trigger
- credentials: AWS credential resolution
"""

__all__ = []
