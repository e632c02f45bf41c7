"""
Package: sqs_queue
Description: SQS message queue operations.

Provides the async queue client shared by the trigger and the command
executor, the typed error taxonomy of queue failures and the message
attribute parser.
"""
