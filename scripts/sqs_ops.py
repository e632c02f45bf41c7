#!/usr/bin/env python3
"""
Script: sqs_ops.py
Description: Run SQS command operations from the command line.

Each invocation runs one operation over one or more input records and
prints one JSON outcome record per line.

Usage:
    python scripts/sqs_ops.py list [--prefix orders]
    python scripts/sqs_ops.py send --queue-url URL --body "hello" [--attributes-json '{"color": "red"}']
    python scripts/sqs_ops.py send-batch --queue-url URL --entries '[{"body": "a"}, {"body": "b"}]'
    python scripts/sqs_ops.py delete --queue-url URL --receipt-handle HANDLE
    python scripts/sqs_ops.py send --items records.json --continue-on-fail

With --items, the file holds a JSON array of parameter objects, one per
input record; flags given on the command line fill in missing keys.
"""

import argparse
import asyncio
import json
import sys
from typing import Any, Dict, List

from config.credentials import CredentialsError, resolve_credentials
from config.settings import settings
from handlers.executor import CommandExecutor, ItemProcessingError, Operation
from sqs_queue.sqs import SQSClient
from utils.logger import configure_logging, get_logger

logger = get_logger(__name__)

COMMANDS = {
    'send': Operation.SEND_MESSAGE,
    'send-batch': Operation.SEND_MESSAGE_BATCH,
    'delete': Operation.DELETE_MESSAGE,
    'list': Operation.LIST_QUEUES,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run SQS command operations")
    parser.add_argument('command', choices=sorted(COMMANDS), help='Operation to run')
    parser.add_argument('--queue-url', dest='queue_url', help='Target queue URL')
    parser.add_argument('--body', dest='message_body', help='Literal message body')
    parser.add_argument('--input-json', dest='input_json', help='JSON object sent as the message body')
    parser.add_argument('--group-id', dest='group_id', help='FIFO message group id')
    parser.add_argument('--dedup-id', dest='deduplication_id', help='FIFO deduplication id')
    parser.add_argument('--delay', dest='delay_seconds', type=int, help='Delivery delay (0-900 seconds)')
    parser.add_argument('--attributes-json', dest='attributes_json', help='Message attributes as a JSON object')
    parser.add_argument('--entries', dest='entries_json', help='JSON array of batch message descriptors')
    parser.add_argument('--receipt-handle', dest='receipt_handle', help='Receipt handle to delete')
    parser.add_argument('--prefix', help='Queue name prefix for list')
    parser.add_argument('--items', help='JSON file holding an array of parameter objects')
    parser.add_argument(
        '--continue-on-fail',
        action='store_true',
        default=settings.continue_on_fail,
        help='Emit error records instead of stopping at the first failure'
    )
    return parser


def build_items(args: argparse.Namespace) -> List[Dict[str, Any]]:
    """Build the input records from --items and the command-line flags."""
    base: Dict[str, Any] = {
        key: value
        for key, value in vars(args).items()
        if key in (
            'queue_url', 'message_body', 'group_id', 'deduplication_id',
            'delay_seconds', 'attributes_json', 'entries_json', 'receipt_handle', 'prefix'
        ) and value is not None
    }
    if args.input_json is not None:
        base['send_input_data'] = True
        base['input_data'] = json.loads(args.input_json)

    if not args.items:
        return [base]

    with open(args.items, encoding='utf-8') as f:
        records = json.load(f)
    if not isinstance(records, list):
        raise ValueError("--items file must hold a JSON array")
    return [{**base, **record} for record in records]


async def run(args: argparse.Namespace) -> int:
    credentials = resolve_credentials(settings)
    client = SQSClient(credentials, endpoint_url=settings.sqs_endpoint_url)
    executor = CommandExecutor(client, continue_on_fail=args.continue_on_fail)

    records = await executor.run(COMMANDS[args.command], build_items(args))
    for record in records:
        print(json.dumps(record.to_record()))

    return 0 if all(record.success for record in records) else 1


def main():
    args = build_parser().parse_args()
    configure_logging(settings.log_level)

    try:
        sys.exit(asyncio.run(run(args)))

    except ItemProcessingError as e:
        print(f"❌ {e}", file=sys.stderr)
        sys.exit(1)

    except (CredentialsError, ValueError) as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        logger.error("SQS command failed", command=args.command, error=str(e))
        sys.exit(2)


if __name__ == '__main__':
    main()
