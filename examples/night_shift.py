#!/usr/bin/env python3
"""Example: Night Shift - create a line, share its secret, exchange messages.

This example demonstrates the core Secretline workflow:
1. Alice creates a line; the engine generates its secret
2. Bob joins and gains decrypt capability
3. Both members decrypt the same secret with signed proofs
4. Bob posts an encrypted message, Alice reads it
5. Mallory, a non-member, is refused at every step

Usage:
    python examples/night_shift.py
"""

from __future__ import annotations

import sys
from pathlib import Path

# Add src to path when running from source
src_path = Path(__file__).parent.parent / "src"
if src_path.exists():
    sys.path.insert(0, str(src_path))

from secretline.core import EventBus, ForbiddenError, LineCoordinator, event_to_dict
from secretline.crypto import LocalConfidentialEngine, LocalIdentity, decrypt_message, encrypt_message


def main() -> None:
    """Run the night shift example."""
    print("=" * 60)
    print("  Secretline Example: Night Shift")
    print("=" * 60)
    print()

    bus = EventBus()
    bus.subscribe_all(lambda event: print(f"  event: {event_to_dict(event)}"))

    engine = LocalConfidentialEngine()
    coordinator = LineCoordinator(engine, domain=(10_000_000, 99_999_999), events=bus)
    alice, bob, mallory = LocalIdentity(), LocalIdentity(), LocalIdentity()

    print("[Step 1] Alice creates a line...")
    line_id = coordinator.create_line("Night Shift", alice.address)
    info = coordinator.get_line(line_id)
    print(f"  line #{info.id} {info.name!r}, {info.member_count} member, handle {info.secret_handle[:18]}...")
    print()

    print("[Step 2] Bob joins...")
    coordinator.join_line(line_id, bob.address)
    print(f"  members: {coordinator.get_line(line_id).member_count}")
    print()

    print("[Step 3] Members decrypt the secret...")
    handle = coordinator.secret_handle(line_id)
    alice_secret = engine.decrypt(handle, alice.address, alice.prove(handle))
    bob_secret = engine.decrypt(handle, bob.address, bob.prove(handle))
    print(f"  same secret for both: {alice_secret == bob_secret}")
    print()

    print("[Step 4] Bob posts, Alice reads...")
    message_id = coordinator.send_message(line_id, bob.address, encrypt_message("meet at midnight", bob_secret))
    message = coordinator.get_message(line_id, message_id)
    print(f"  ciphertext: {message.ciphertext}")
    print(f"  Alice reads: {decrypt_message(message.ciphertext, alice_secret)!r}")
    print()

    print("[Step 5] Mallory tries anyway...")
    try:
        engine.decrypt(handle, mallory.address, mallory.prove(handle))
    except ForbiddenError as e:
        print(f"  decrypt refused: {e.message}")
    try:
        coordinator.send_message(line_id, mallory.address, "0xdeadbeef")
    except ForbiddenError as e:
        print(f"  post refused: {e.message}")


if __name__ == "__main__":
    main()
