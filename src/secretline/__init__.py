# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Secretline - confidential group lines with a shared secret.

Each line has one secret held by a confidential engine, a member set that
only grows, and an append-only log of messages encrypted with the secret.
This package implements the access-control core that decides who may
obtain the secret and who may post, plus a local engine and CLI.

Architecture:
  Line directory (ids, metadata)
    -> Secret vault (opaque handle, capability grants)
    -> Membership registry (who belongs)
    -> Message ledger (encrypted, member-gated, append-only)
  all orchestrated by the LineCoordinator.

CLI entry point: ``secretline``
"""

__version__ = "0.1.0"

from . import (
    core as core,
)
