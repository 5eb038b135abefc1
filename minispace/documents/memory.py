import copy
import uuid
from typing import Any
from typing import Optional

from minispace.exceptions import NotFoundError

from .base import Document
from .base import DocumentStore


class MemoryDocumentStore(DocumentStore):
    """In-memory document store implementation.

    Documents are deep-copied in and out, and returned with their ``id``.
    """

    def __init__(self) -> None:
        self.collections: dict[str, dict[str, Document]] = {}

    def _collection(self, name: str) -> dict[str, Document]:
        return self.collections.setdefault(name, {})

    @staticmethod
    def _export(doc_id: str, doc: Document) -> Document:
        return {**copy.deepcopy(doc), "id": doc_id}

    async def find_one(self, collection: str, **equals: Any) -> Optional[Document]:
        for doc_id, doc in self._collection(collection).items():
            if all(doc.get(field) == value for field, value in equals.items()):
                return self._export(doc_id, doc)
        return None

    async def get_by_id(self, collection: str, doc_id: str) -> Optional[Document]:
        doc = self._collection(collection).get(doc_id)
        if doc is None:
            return None
        return self._export(doc_id, doc)

    async def upsert(self, collection: str, doc_id: str, fields: Document) -> None:
        self._collection(collection).setdefault(doc_id, {}).update(copy.deepcopy(fields))

    async def update(self, collection: str, doc_id: str, fields: Document) -> None:
        doc = self._collection(collection).get(doc_id)
        if doc is None:
            msg = f"Document {collection}/{doc_id} not found"
            raise NotFoundError(msg)
        doc.update(copy.deepcopy(fields))

    async def delete(self, collection: str, doc_id: str) -> None:
        self._collection(collection).pop(doc_id, None)

    async def insert(self, collection: str, fields: Document) -> str:
        doc_id = uuid.uuid4().hex
        self._collection(collection)[doc_id] = copy.deepcopy(fields)
        return doc_id
