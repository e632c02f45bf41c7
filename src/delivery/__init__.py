"""
Package: delivery
Description: Downstream delivery of trigger output.

Provides the sink contract, in-memory and logging sinks, and push
delivery to a webhook with retries for transient failures.
"""
