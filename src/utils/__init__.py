"""
Module: utils
Description: Package initialization for utility functions.

Shared helpers used throughout the SQS nodes:
- logger: Structured logging configuration and helpers
- batch_helpers: Batch size validation and JSON array decoding
"""

__all__ = []
