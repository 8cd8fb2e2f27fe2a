"""
Store types — references, documents, snapshots.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any


PRODUCTS = "products"
ORDERS = "orders"


def new_document_id() -> str:
    return uuid.uuid4().hex[:20]


# ═══════════════════════════════════════════════════════════════════════════════
# References
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CollectionRef:
    path: str

    @property
    def name(self) -> str:
        return self.path.rsplit("/", 1)[-1]

    def document(self, document_id: str) -> DocumentRef:
        return DocumentRef(self, document_id)


@dataclass(frozen=True, slots=True)
class DocumentRef:
    collection: CollectionRef
    id: str

    @property
    def path(self) -> str:
        return f"{self.collection.path}/{self.id}"


@dataclass(frozen=True, slots=True)
class Namespace:
    """
    Per-principal storage root: artifacts/{app_id}/users/{principal_id}.

    Two principals of the same app never see each other's collections.
    """

    app_id: str
    principal_id: str

    @property
    def root(self) -> str:
        return f"artifacts/{self.app_id}/users/{self.principal_id}"

    def collection(self, name: str) -> CollectionRef:
        return CollectionRef(f"{self.root}/{name}")

    @property
    def products(self) -> CollectionRef:
        return self.collection(PRODUCTS)

    @property
    def orders(self) -> CollectionRef:
        return self.collection(ORDERS)


# ═══════════════════════════════════════════════════════════════════════════════
# Documents
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Document:
    """A stored document at a given version. `data` is a private copy."""

    ref: DocumentRef
    data: Mapping[str, Any]
    version: int

    @property
    def id(self) -> str:
        return self.ref.id


@dataclass(frozen=True, slots=True)
class CollectionSnapshot:
    """Full contents of a collection, ordered by document id."""

    collection: CollectionRef
    documents: tuple[Document, ...]

    def __len__(self) -> int:
        return len(self.documents)


type SnapshotListener = Callable[[CollectionSnapshot], None]
type ErrorListener = Callable[[CollectionRef, Exception], None]


__all__ = (
    "PRODUCTS",
    "ORDERS",
    "new_document_id",
    "CollectionRef",
    "DocumentRef",
    "Namespace",
    "Document",
    "CollectionSnapshot",
    "SnapshotListener",
    "ErrorListener",
)
