"""StorageProvider protocol - services depend on this, not the concrete implementation."""

from typing import Protocol


class StorageProvider(Protocol):
    async def upload(self, local_path: str) -> str:
        """Upload the file at *local_path* and return its public https URL.

        Raises:
            StorageError: the upload failed or storage is not configured.
        """
        ...
