#!/usr/bin/env python3
"""
mailthread command line
Index a mailbox store and look up reply threads from the terminal
"""

import argparse
import logging
import sys
from typing import List, Optional

from mailthread.client import MailThreadClient
from mailthread.modules.email_data import EmailRecord, Location
from mailthread.modules.exceptions import MailThreadError
from mailthread.utils.colors import Colors
from mailthread.utils.config import Config, ConfigurationError
from mailthread.utils.logging_utils import setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mailthread",
        description="Index an IMAP store by Message-ID and follow reply threads."
    )
    parser.add_argument("--env", default=".env", help="Environment file (default: .env)")

    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("folders", help="List every folder")
    commands.add_parser("index", help="Build the Message-ID index and print a summary")

    find = commands.add_parser("find", help="Find a message by exact subject")
    find.add_argument("subject")
    find.add_argument("--folder", help="Only search this folder")

    thread = commands.add_parser("thread", help="Show the reply chain ending at a subject")
    thread.add_argument("subject")

    first = commands.add_parser("first", help="Seen flag and raw body of message 1")
    first.add_argument("--folder", default="INBOX")

    recent = commands.add_parser("recent", help="Subjects of the newest messages")
    recent.add_argument("--folder", default="INBOX")
    recent.add_argument("--limit", type=int)

    return parser


def format_record(location: Location, record: EmailRecord) -> str:
    lines = [
        Colors.subject(record.subject),
        f"  {Colors.label('location')} {Colors.location(location)}",
        f"  {Colors.label('date')} {record.timestamp.isoformat()}",
        f"  {Colors.label('from')} {', '.join(record.from_addrs)}",
        f"  {Colors.label('to')} {', '.join(record.to_addrs)}",
    ]
    if record.cc_addrs:
        lines.append(f"  {Colors.label('cc')} {', '.join(record.cc_addrs)}")
    if record.parent:
        lines.append(f"  {Colors.label('reply to')} {Colors.location(record.parent)}")
    if record.attachments:
        names = ", ".join(f"{a.filename} ({a.size} bytes)" for a in record.attachments)
        lines.append(f"  {Colors.label('attached')} {names}")
    return "\n".join(lines)


def run_command(client: MailThreadClient, args: argparse.Namespace) -> int:
    if args.command == "folders":
        for name in client.list_folders():
            print(name)
        return 0

    if args.command == "recent":
        for subject in client.most_recent(folder=args.folder, limit=args.limit):
            print(subject)
        return 0

    if args.command == "first":
        result = client.first_message(folder=args.folder)
        if result is None:
            print(Colors.warning(f"{args.folder} is empty"))
            return 0
        seen, body = result
        print(Colors.colorize(f"seen: {seen}", Colors.CYAN))
        print(body)
        return 0

    index = client.build_index()

    if args.command == "index":
        for folder in index.folders():
            count = sum(1 for _, loc in index.items() if loc.folder == folder)
            print(f"{folder}: {count}")
        print(Colors.success(f"{len(index)} messages indexed"))
        return 0

    if args.command == "find":
        match = client.find_by_subject(args.subject, folder=args.folder)
        if match is None:
            print(Colors.warning(f"No message with subject {args.subject!r}"))
            return 0
        print(format_record(*match))
        return 0

    if args.command == "thread":
        chain = client.thread_for_subject(args.subject)
        if not chain:
            print(Colors.warning(f"No message with subject {args.subject!r}"))
            return 0
        for depth, (location, record) in enumerate(chain):
            print(("  " * depth) + format_record(location, record).replace("\n", "\n" + "  " * depth))
        return 0

    return 2


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    args = build_parser().parse_args(argv)
    Colors.configure(sys.stdout)

    try:
        config = Config(args.env)
        config.validate()
    except ConfigurationError as e:
        print(Colors.error(f"Configuration error: {e}"), file=sys.stderr)
        return 1

    setup_logging(config.system)
    logger = logging.getLogger("mailthread")

    try:
        with MailThreadClient(config) as client:
            return run_command(client, args)
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130
    except MailThreadError as e:
        logger.error(f"{type(e).__name__}: {e}")
        print(Colors.error(str(e)), file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
