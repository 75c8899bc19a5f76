"""vbstore CLI entry points.

This module exposes inspection, read, and write commands for stores.
It maps argparse commands onto SDK calls.
"""

from __future__ import annotations

import argparse
from dataclasses import replace
import json
from pathlib import Path
import sys
from typing import Any, Sequence

from batch.batch_id import BatchID
from core.config import VbStoreConfig
from core.errors import VbStoreError
from core.types import CurrentEncoding, RecordPair
from store.store_sdk import VbStoreClient


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(prog="vbstore", description="Versioned batch store CLI")
    parser.add_argument("--data-root", help="Override VBSTORE_DATA_ROOT for this command")
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_versions_command(subparsers)
    _add_read_last_command(subparsers)
    _add_write_last_command(subparsers)
    _add_tag_command(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the vbstore CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    client = _build_client(args.data_root)
    if args.command == "versions":
        return _run_versions_command(client, args)
    if args.command == "read-last":
        return _run_read_last_command(client, args)
    if args.command == "write-last":
        return _run_write_last_command(client, args)
    if args.command == "tag":
        return _run_tag_command(client, args)
    parser.error(f"Unsupported command: {args.command}")
    return 2


def _build_client(data_root: str | None) -> VbStoreClient:
    """Build SDK client with optional data-root override.

    Args:
        data_root: Optional override path.

    Returns:
        Configured SDK client.
    """
    config = VbStoreConfig.from_env()
    if data_root:
        config = replace(config, data_root=Path(data_root).expanduser().resolve())
    return VbStoreClient(config)


def _run_versions_command(client: VbStoreClient, args: argparse.Namespace) -> int:
    """Handle versions command.

    Prints one row per committed version: number, tag, resolved batch,
    and the numbering convention it was read under.
    """
    for listing in client.describe_versions(args.path):
        encoding = "current" if isinstance(listing.encoding, CurrentEncoding) else "legacy"
        print(f"{listing.version}\t{listing.tag or '-'}\t{listing.batch_id}\t{encoding}")
    return 0


def _run_read_last_command(client: VbStoreClient, args: argparse.Namespace) -> int:
    """Handle read-last command.

    Args:
        client: SDK client.
        args: Parsed CLI args.

    Returns:
        Exit code; 1 when no prior version exists.
    """
    result = client.read_last(args.path, BatchID(args.before))
    if result.last is None:
        for message in result.messages:
            print(message, file=sys.stderr)
        return 1
    print(result.last.batch_id)
    for key, value in result.last.producer.run(client.context("cli-read-last")):
        print(json.dumps([key, value], sort_keys=True))
    return 0


def _run_write_last_command(client: VbStoreClient, args: argparse.Namespace) -> int:
    """Handle write-last command.

    Args:
        client: SDK client.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    records = _read_records_file(Path(args.input))
    version = client.write_last(args.path, BatchID(args.batch), records)
    print(version)
    return 0


def _run_tag_command(client: VbStoreClient, args: argparse.Namespace) -> int:
    """Handle tag command for legacy-convention versions."""
    client.storage.put_tag(args.path, args.version, args.tag)
    return 0


def _read_records_file(input_path: Path) -> list[RecordPair]:
    """Read ``[key, value]`` JSON lines.

    Args:
        input_path: JSONL input file.

    Returns:
        Parsed records in file order.

    Raises:
        VbStoreError: If the file is missing or a row is malformed.
    """
    try:
        lines = input_path.read_text(encoding="utf-8").splitlines()
    except OSError as error:
        raise VbStoreError(f"Failed to read records from {input_path}: {error}.") from error
    records: list[RecordPair] = []
    for line_number, line in enumerate(lines, 1):
        if not line.strip():
            continue
        try:
            payload = json.loads(line)
        except json.JSONDecodeError as error:
            raise VbStoreError(
                f"Invalid JSON at {input_path}:{line_number}: {error.msg}. "
                "Write one [key, value] array per line."
            ) from error
        if not isinstance(payload, list) or len(payload) != 2:
            raise VbStoreError(
                f"Invalid record at {input_path}:{line_number}: expected a [key, value] array."
            )
        records.append((payload[0], payload[1]))
    return records


def _add_versions_command(subparsers: Any) -> None:
    versions_parser = subparsers.add_parser("versions", help="List committed versions")
    versions_parser.add_argument("path", help="Logical store path")


def _add_read_last_command(subparsers: Any) -> None:
    read_parser = subparsers.add_parser(
        "read-last", help="Print the newest batch before a bound and its records"
    )
    read_parser.add_argument("path", help="Logical store path")
    read_parser.add_argument(
        "--before", type=int, required=True, help="Exclusive upper-bound batch number"
    )


def _add_write_last_command(subparsers: Any) -> None:
    write_parser = subparsers.add_parser(
        "write-last", help="Write the last snapshot completing a batch"
    )
    write_parser.add_argument("path", help="Logical store path")
    write_parser.add_argument("--batch", type=int, required=True, help="Completed batch number")
    write_parser.add_argument(
        "--input", required=True, help="JSONL file with one [key, value] array per line"
    )


def _add_tag_command(subparsers: Any) -> None:
    tag_parser = subparsers.add_parser(
        "tag", help="Attach a legacy upper-bound tag to a committed version"
    )
    tag_parser.add_argument("path", help="Logical store path")
    tag_parser.add_argument("version", type=int, help="Committed version number")
    tag_parser.add_argument("tag", help="Tag value, e.g. BatchID.12")
