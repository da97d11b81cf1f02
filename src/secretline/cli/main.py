#!/usr/bin/env python3
"""
Secretline CLI - confidential group lines from the terminal.

Commands:
  secretline create <name>             Create a line with a fresh secret
  secretline join <line_id>            Join a line to gain secret access
  secretline secret <line_id>          Decrypt your copy of the line secret
  secretline send <line_id> <message>  Encrypt and post a message
  secretline read <line_id>            List and decrypt a line's messages
  secretline show <line_id>            Show line metadata
  secretline lines                     List all lines
  secretline whoami                    Print the current identity address
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ..core.config import get_config
from ..core.coordinator import LineCoordinator
from ..core.exceptions import SecretlineException
from ..core.logging import configure_logging
from ..core.store import load_state, locked_state, save_state
from ..crypto.cipher import decrypt_message, encrypt_message
from ..crypto.identity import LocalIdentity

logger = logging.getLogger(__name__)


@dataclass
class Session:
    """State and identity a command runs against."""

    coordinator: LineCoordinator
    identity: LocalIdentity
    state_path: Path

    def save(self) -> None:
        save_state(self.coordinator, self.state_path)


@contextmanager
def open_session(args: argparse.Namespace) -> Generator[Session, None, None]:
    """Load the state snapshot and the caller's identity key.

    The state lock is held until the block exits, so a command's
    load, mutation and save run as one step across processes.
    """
    config = get_config()
    home = Path(args.home).expanduser() if args.home else config.home_path
    name = args.identity or config.identity
    state_path = home / "state.json"
    with locked_state(state_path):
        identity = LocalIdentity.load_or_create(home / "keys" / f"{name}.pem")
        coordinator = load_state(state_path, domain=config.secret_domain)
        yield Session(coordinator=coordinator, identity=identity, state_path=state_path)


def reveal_secret(session: Session, line_id: int) -> int:
    """Ask the engine for the line secret, proving ownership of the identity."""
    handle = session.coordinator.secret_handle(line_id)
    return session.coordinator.engine.decrypt(handle, session.identity.address, session.identity.prove(handle))


def emit(args: argparse.Namespace, data: dict[str, Any], text: str) -> None:
    if args.json:
        print(json.dumps(data, indent=2, default=str))
    else:
        print(text)


def output_error(message: str) -> None:
    """Print error message to stderr."""
    print(f"Error: {message}", file=sys.stderr)


# ============================================================================
# Commands
# ============================================================================


def cmd_create(args: argparse.Namespace) -> int:
    with open_session(args) as session:
        line_id = session.coordinator.create_line(args.name, session.identity.address)
        session.save()
    emit(args, {"line_id": line_id, "name": args.name}, f"Line created with id={line_id}")
    return 0


def cmd_join(args: argparse.Namespace) -> int:
    with open_session(args) as session:
        session.coordinator.join_line(args.line_id, session.identity.address)
        session.save()
        info = session.coordinator.get_line(args.line_id)
    emit(
        args,
        {"line_id": args.line_id, "member_count": info.member_count},
        f"Joined line {args.line_id} ({info.member_count} members)",
    )
    return 0


def cmd_secret(args: argparse.Namespace) -> int:
    with open_session(args) as session:
        secret = reveal_secret(session, args.line_id)
    emit(args, {"line_id": args.line_id, "secret": secret}, f"Line {args.line_id} secret: {secret}")
    return 0


def cmd_send(args: argparse.Namespace) -> int:
    with open_session(args) as session:
        secret = reveal_secret(session, args.line_id)
        ciphertext = encrypt_message(args.message, secret)
        message_id = session.coordinator.send_message(args.line_id, session.identity.address, ciphertext)
        session.save()
    emit(
        args,
        {"line_id": args.line_id, "message_id": message_id, "ciphertext": ciphertext},
        f"Message {message_id} sent to line {args.line_id}",
    )
    return 0


def cmd_read(args: argparse.Namespace) -> int:
    with open_session(args) as session:
        secret = reveal_secret(session, args.line_id)
        messages = session.coordinator.messages(args.line_id, args.start, args.limit)

    rows = []
    for message in messages:
        try:
            plaintext = decrypt_message(message.ciphertext, secret)
        except SecretlineException:
            logger.debug("Message %d on line %d is not readable text", message.id, args.line_id)
            plaintext = None
        rows.append({**message.to_dict(), "plaintext": plaintext})

    if args.json:
        print(json.dumps(rows, indent=2, default=str))
        return 0

    if not rows:
        print(f"No messages on line {args.line_id}")
    for row in rows:
        body = row["plaintext"] if row["plaintext"] is not None else f"<unreadable {row['ciphertext']}>"
        print(f"#{row['id']} {row['timestamp']} {row['sender']}: {body}")
    return 0


def cmd_show(args: argparse.Namespace) -> int:
    with open_session(args) as session:
        info = session.coordinator.get_line(args.line_id)
        data = {
            **info.to_dict(),
            "message_count": session.coordinator.message_count(args.line_id),
            "is_member": session.coordinator.is_member(args.line_id, session.identity.address),
        }
    text = "\n".join(
        [
            f"Line #{info.id}: {info.name}",
            f"  Creator:  {info.creator}",
            f"  Created:  {info.created_at.isoformat()}",
            f"  Members:  {info.member_count}",
            f"  Messages: {data['message_count']}",
            f"  Secret:   {info.secret_handle}",
            f"  You are {'a member' if data['is_member'] else 'not a member'}",
        ]
    )
    emit(args, data, text)
    return 0


def cmd_lines(args: argparse.Namespace) -> int:
    with open_session(args) as session:
        infos = session.coordinator.list_lines()
        mine = set(session.coordinator.lines_for(session.identity.address))
    if args.json:
        print(json.dumps([i.to_dict() for i in infos], indent=2, default=str))
        return 0
    if not infos:
        print("No lines yet")
    for info in infos:
        marker = "*" if info.id in mine else " "
        print(f"{marker} #{info.id} {info.name} ({info.member_count} members)")
    return 0


def cmd_whoami(args: argparse.Namespace) -> int:
    with open_session(args) as session:
        address = session.identity.address
    emit(args, {"address": address}, address)
    return 0


# ============================================================================
# Parser
# ============================================================================


def app() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="secretline",
        description="Confidential group lines with a shared secret",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  secretline create "Night Shift"          Create line 1
  secretline --as bob join 1               Join as identity "bob"
  secretline send 1 "hello"                Encrypt and post
  secretline read 1                        Decrypt the line's messages
        """,
    )
    parser.add_argument("--as", dest="identity", help="Identity key name (default: SECRETLINE_IDENTITY)")
    parser.add_argument("--home", help="State directory (default: SECRETLINE_HOME)")
    parser.add_argument("--json", action="store_true", help="Output JSON")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    create_parser = subparsers.add_parser("create", help="Create a line with a fresh secret")
    create_parser.add_argument("name", help="Line name")

    join_parser = subparsers.add_parser("join", help="Join a line to gain secret access")
    join_parser.add_argument("line_id", type=int, help="Line id")

    secret_parser = subparsers.add_parser("secret", help="Decrypt the line secret for the caller")
    secret_parser.add_argument("line_id", type=int, help="Line id")

    send_parser = subparsers.add_parser("send", help="Encrypt and send a message to a line")
    send_parser.add_argument("line_id", type=int, help="Line id")
    send_parser.add_argument("message", help="Plaintext message")

    read_parser = subparsers.add_parser("read", help="List and decrypt a line's messages")
    read_parser.add_argument("line_id", type=int, help="Line id")
    read_parser.add_argument("--start", type=int, default=0, help="First message id")
    read_parser.add_argument("-n", "--limit", type=int, default=None, help="Maximum messages")

    show_parser = subparsers.add_parser("show", help="Show line metadata")
    show_parser.add_argument("line_id", type=int, help="Line id")

    subparsers.add_parser("lines", help="List all lines")
    subparsers.add_parser("whoami", help="Print the current identity address")

    return parser


COMMANDS = {
    "create": cmd_create,
    "join": cmd_join,
    "secret": cmd_secret,
    "send": cmd_send,
    "read": cmd_read,
    "show": cmd_show,
    "lines": cmd_lines,
    "whoami": cmd_whoami,
}


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = app()
    args = parser.parse_args(argv)

    configure_logging(level="DEBUG" if args.verbose else "WARNING", json_format=False)

    handler = COMMANDS.get(args.command)
    if handler is None:
        parser.print_help()
        return 1

    try:
        return handler(args)
    except SecretlineException as e:
        if args.json:
            print(json.dumps(e.to_dict(), indent=2, default=str), file=sys.stderr)
        else:
            output_error(e.message)
        return 1


if __name__ == "__main__":
    sys.exit(main())
