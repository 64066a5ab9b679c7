import asyncio

from shared.helper.HelperConfig import HelperConfig
from shared.models.document import UploadedDocument
from shared.store.DocumentStoreInterface import DocumentStoreInterface


class DocumentStoreMemory(DocumentStoreInterface):
    """Process-local document store. Contents are lost on restart."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._documents: dict[str, dict[str, UploadedDocument]] = {}
        self._lock = asyncio.Lock()

    def get_engine_name(self) -> str:
        return "memory"

    async def do_save(self, document: UploadedDocument) -> None:
        async with self._lock:
            self._documents.setdefault(document.owner_id, {})[document.name] = document
        self.logging.debug("Stored document '%s' (%d chars).", document.name, len(document.raw_content))

    async def do_get(self, owner_id: str, name: str) -> UploadedDocument | None:
        return self._documents.get(owner_id, {}).get(name)

    async def do_list(self, owner_id: str) -> list[UploadedDocument]:
        documents = list(self._documents.get(owner_id, {}).values())
        return sorted(documents, key=lambda doc: doc.created, reverse=True)

    async def do_delete(self, owner_id: str, name: str) -> bool:
        async with self._lock:
            return self._documents.get(owner_id, {}).pop(name, None) is not None

    async def do_clear(self, owner_id: str) -> int:
        async with self._lock:
            removed = self._documents.pop(owner_id, {})
        return len(removed)
