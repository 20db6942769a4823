"""
NoteVault - a multi-user note store with an append-only version history.

Every change to a note (update, delete, rollback) first snapshots the
superseded state into a per-note version log inside the same database
transaction, so any earlier state can be restored later.

This version uses synchronous operations.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("notevault")
except PackageNotFoundError:
    __version__ = "0.3.0"
