from abc import ABC
from abc import abstractmethod
from typing import Any
from typing import Optional

Document = dict[str, Any]


class DocumentStore(ABC):
    """Base class for document stores.

    Implementations wrap backend failures in ``UpstreamError``.
    """

    @abstractmethod
    async def find_one(self, collection: str, **equals: Any) -> Optional[Document]:
        """Return the first document whose fields equal ``equals``."""

    @abstractmethod
    async def get_by_id(self, collection: str, doc_id: str) -> Optional[Document]:
        """Retrieve a document by id."""

    @abstractmethod
    async def upsert(self, collection: str, doc_id: str, fields: Document) -> None:
        """Create the document or merge ``fields`` into it."""

    @abstractmethod
    async def update(self, collection: str, doc_id: str, fields: Document) -> None:
        """Merge ``fields`` into an existing document.

        Raises:
            NotFoundError: If the document does not exist
        """

    @abstractmethod
    async def delete(self, collection: str, doc_id: str) -> None:
        """Remove a document."""

    @abstractmethod
    async def insert(self, collection: str, fields: Document) -> str:
        """Store a new document and return its generated id."""
