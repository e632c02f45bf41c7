"""
Module: handlers
Description: Package initialization for command handlers.

This package contains the command side of the SQS nodes:
- executor: Send, batch-send, delete and list-queues operations, run
  once per input record with per-item failure isolation
"""

__all__ = []
