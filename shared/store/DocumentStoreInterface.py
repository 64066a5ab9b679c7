from abc import ABC, abstractmethod

from shared.helper.HelperConfig import HelperConfig
from shared.models.document import UploadedDocument


class DocumentStoreInterface(ABC):
    """Persistence of extracted documents, partitioned by owner.

    Every operation is scoped to one owner_id; implementations must never
    return or touch another owner's documents.
    """

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()

    ##########################################
    ################ GETTER ##################
    ##########################################

    @abstractmethod
    def get_engine_name(self) -> str:
        """
        Returns the name of the store backend (e.g. "memory").
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    @abstractmethod
    async def do_save(self, document: UploadedDocument) -> None:
        """Store a document, replacing an existing one with the same (owner_id, name).

        Args:
            document (UploadedDocument): The document to store.
        """
        pass

    @abstractmethod
    async def do_get(self, owner_id: str, name: str) -> UploadedDocument | None:
        """Return the owner's document with the given name, or None."""
        pass

    @abstractmethod
    async def do_list(self, owner_id: str) -> list[UploadedDocument]:
        """Return the owner's documents, newest first."""
        pass

    @abstractmethod
    async def do_delete(self, owner_id: str, name: str) -> bool:
        """Delete one document.

        Returns:
            bool: True if the document existed.
        """
        pass

    @abstractmethod
    async def do_clear(self, owner_id: str) -> int:
        """Delete all documents of an owner.

        Returns:
            int: Number of deleted documents.
        """
        pass
