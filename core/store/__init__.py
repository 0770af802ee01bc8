"""
DocFlow Store — Public API
==========================
Flat-file persistence with atomic whole-collection rewrites.
"""

from core.store.codec import (
    DictModelCodec,
    EntityCodec,
    IdentityAccessor,
)
from core.store.document_store import DocumentStore
from core.store.errors import (
    AlreadyExistsError,
    DocFlowError,
    InvalidArgumentError,
    InvalidTransitionError,
    NotFoundError,
    PersistenceError,
)

__all__ = [
    "DocumentStore",
    "EntityCodec",
    "DictModelCodec",
    "IdentityAccessor",
    "DocFlowError",
    "NotFoundError",
    "AlreadyExistsError",
    "InvalidArgumentError",
    "InvalidTransitionError",
    "PersistenceError",
]
