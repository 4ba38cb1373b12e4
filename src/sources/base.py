"""Abstract base class for remote mailbox source clients."""

from abc import ABC, abstractmethod

from src.core.schemas import AccountRef, RemoteMessage, SourceQuery


class SourceClient(ABC):
    """Base class that every remote source client must implement."""

    @property
    @abstractmethod
    def source_id(self) -> str:
        """Unique identifier for this source (e.g. 'gmail')."""

    @abstractmethod
    async def query(self, account: AccountRef, query: SourceQuery) -> list[RemoteMessage]:
        """Query one account and return messages with their attachments.

        Raises:
            SourceQueryError: If the account could not be queried.
        """
