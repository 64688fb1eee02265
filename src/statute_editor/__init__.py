"""Hierarchical statute editor: tree editing, undo, validation and save reconciliation."""

from statute_editor.api import StatuteApi
from statute_editor.core.edit.session import EditSession, save_session
from statute_editor.core.store import LocalStore
from statute_editor.models.node import Node
from statute_editor.models.taxonomy import NodeType
from statute_editor.protocols import DraftStoreProtocol, StoreProtocol

__all__ = [
    "DraftStoreProtocol",
    "EditSession",
    "LocalStore",
    "Node",
    "NodeType",
    "StatuteApi",
    "StoreProtocol",
    "save_session",
]
