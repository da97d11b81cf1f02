"""JSON snapshots of a coordinator and its local engine.

The snapshot is the CLI's stand-in for a persistent ledger. Writes go to a
temporary file that replaces the target atomically, so a crash leaves
either the old or the new snapshot on disk. A load-mutate-save cycle runs
inside locked_state(), which holds an exclusive flock on a sibling
``.lock`` file so concurrent processes apply their changes one at a time.
"""

from __future__ import annotations

import fcntl
import json
import logging
import os
import tempfile
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .coordinator import LineCoordinator
from .directory import LineDirectory
from .exceptions import SecretlineException, StoreException
from .ledger import MessageLedger
from .models import Line, MembershipRecord, Message, SecretHandle
from .registry import MembershipRegistry
from .vault import SecretVault

if TYPE_CHECKING:
    from ..crypto.engine import LocalConfidentialEngine

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


def snapshot(coordinator: LineCoordinator) -> dict[str, Any]:
    """Serialize every committed line with its members, grants and messages."""
    lines = []
    with coordinator._write_lock:
        for line in coordinator.directory.lines():
            lines.append(
                {
                    **line.to_dict(),
                    "secret_handle": str(coordinator.vault.get_secret_handle(line.id)),
                    "grants": sorted(coordinator.vault.grants(line.id)),
                    "members": [r.to_dict() for r in coordinator.registry.members(line.id)],
                    "messages": [m.to_dict() for m in coordinator.ledger.page(line.id)],
                }
            )
        engine = coordinator.engine
        engine_state = engine.to_dict() if hasattr(engine, "to_dict") else None
    return {"version": SNAPSHOT_VERSION, "lines": lines, "engine": engine_state}


def restore(
    data: dict[str, Any],
    engine: LocalConfidentialEngine | None = None,
    domain: tuple[int, int] | None = None,
) -> LineCoordinator:
    """Rebuild a coordinator from a snapshot.

    Args:
        data: Output of snapshot().
        engine: Engine to attach. If omitted, a LocalConfidentialEngine is
            rebuilt from the snapshot's engine section.
        domain: Secret domain for lines created after the restore.

    Raises:
        StoreException: If the snapshot is malformed.
    """
    if not isinstance(data, dict) or data.get("version") != SNAPSHOT_VERSION:
        raise StoreException(f"Unsupported snapshot version: {data.get('version') if isinstance(data, dict) else None}")

    if engine is None:
        from ..crypto.engine import LocalConfidentialEngine

        engine = LocalConfidentialEngine.from_dict(data.get("engine") or {})

    registry = MembershipRegistry()
    ledger = MessageLedger(registry)
    coordinator = LineCoordinator(engine, domain=domain, registry=registry, ledger=ledger)
    vault: SecretVault = coordinator.vault

    lines: list[Line] = []
    try:
        for entry in data.get("lines", []):
            line = Line.from_dict(entry)
            if line.id != len(lines) + 1:
                raise StoreException(f"Line ids are not sequential at {line.id}")
            vault.restore(line.id, SecretHandle(entry["secret_handle"]), set(entry.get("grants", [])))
            registry.restore(line.id, [MembershipRecord.from_dict(m) for m in entry["members"]])
            ledger.restore(line.id, [Message.from_dict(m) for m in entry.get("messages", [])])
            lines.append(line)
    except StoreException:
        raise
    except (KeyError, TypeError, ValueError, SecretlineException) as e:
        raise StoreException(f"Malformed snapshot: {e}") from e

    coordinator.directory = LineDirectory(lines)
    logger.debug("Restored %d lines", len(lines))
    return coordinator


def save_state(coordinator: LineCoordinator, path: Path) -> None:
    """Atomically write a snapshot to path."""
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = json.dumps(snapshot(coordinator), indent=2)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".state-", suffix=".json")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(payload)
        os.replace(tmp_name, path)
    except OSError as e:
        Path(tmp_name).unlink(missing_ok=True)
        raise StoreException(f"Cannot write state: {e}", path=str(path)) from e


def load_state(path: Path, domain: tuple[int, int] | None = None) -> LineCoordinator:
    """Load a snapshot, or start empty with a fresh local engine if path does not exist."""
    if not path.exists():
        from ..crypto.engine import LocalConfidentialEngine

        return LineCoordinator(LocalConfidentialEngine(), domain=domain)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise StoreException(f"Cannot read state: {e}", path=str(path)) from e
    return restore(data, domain=domain)


@contextmanager
def locked_state(path: Path) -> Generator[Path, None, None]:
    """Hold an exclusive lock on the state at path until the block exits.

    The lock is taken on a ``.lock`` file beside the snapshot (``state.json``
    locks ``state.lock``); the snapshot file itself is replaced on save.
    """
    lock_path = path.with_suffix(".lock")
    try:
        lock_path.parent.mkdir(parents=True, exist_ok=True)
        lock_path.touch(exist_ok=True)
        lock = open(lock_path, "r+")
    except OSError as e:
        raise StoreException(f"Cannot open state lock: {e}", path=str(lock_path)) from e

    with lock:
        fcntl.flock(lock, fcntl.LOCK_EX)
        try:
            yield path
        finally:
            fcntl.flock(lock, fcntl.LOCK_UN)
