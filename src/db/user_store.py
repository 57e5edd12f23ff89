"""Local JSON document store for user progress

Stand-in for the Firestore users/{uid} collection: one JSON file per user
under DATA_PATH/users, shallow-merge writes, validated reads.
"""
import json
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from src.config import DATA_PATH
from src.exceptions import StorageError, wrap_external_exception
from src.models.progress import UserDocument

logger = logging.getLogger(__name__)

USERS_COLLECTION = "users"


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class UserDocumentStore:
    """Read and write user documents as JSON files"""

    def __init__(self, data_path: Path = DATA_PATH):
        self.data_path = data_path

    @property
    def collection_dir(self) -> Path:
        return self.data_path / USERS_COLLECTION

    def get_document_path(self, user_id: str) -> Path:
        """Get the JSON file backing a user's document"""
        return self.collection_dir / f"{user_id}.json"

    def _read_raw(self, path: Path, user_id: str) -> Optional[Dict[str, Any]]:
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text())
        except (OSError, json.JSONDecodeError) as e:
            raise wrap_external_exception(e, operation="read_user_document", user_id=user_id)

    async def get_document(self, user_id: str) -> Optional[UserDocument]:
        """Load a user document, or None if it was never written"""
        raw = self._read_raw(self.get_document_path(user_id), user_id)
        if raw is None:
            return None
        try:
            return UserDocument.model_validate({**raw, "user_id": user_id})
        except PydanticValidationError as e:
            raise StorageError(
                message=f"Stored document for {user_id} is invalid: {e.error_count()} field error(s)",
                path=str(self.get_document_path(user_id)),
                user_id=user_id,
                operation="read_user_document",
                context={"fields": sorted({str(err["loc"][0]) for err in e.errors() if err["loc"]})},
                cause=e
            )

    async def get_or_create(self, user_id: str, display_name: Optional[str] = None) -> UserDocument:
        """Load a user document, writing a default one for new users"""
        document = await self.get_document(user_id)
        if document is not None:
            return document

        fields = {"display_name": display_name} if display_name else {}
        document = await self.set_document(user_id, fields, merge=False)
        logger.info(f"Created user document for {user_id}")
        return document

    async def set_document(
        self,
        user_id: str,
        data: Dict[str, Any],
        merge: bool = True
    ) -> UserDocument:
        """
        Write fields to a user's document.

        Args:
            user_id: Document ID
            data: Fields to write
            merge: Shallow-merge into the existing document instead of replacing it

        Returns:
            The validated document as stored
        """
        path = self.get_document_path(user_id)
        existing = self._read_raw(path, user_id) if merge else None
        merged = {**(existing or {}), **data, "user_id": user_id}

        # Validate before touching the file so bad writes never land on disk
        document = UserDocument.model_validate(merged)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(merged, default=_json_default, indent=2))
        except OSError as e:
            raise wrap_external_exception(
                e,
                operation="write_user_document",
                user_id=user_id,
                context={"fields": sorted(data)}
            )

        logger.debug(f"Wrote {sorted(data)} to user document {user_id} (merge={merge})")
        return document

    async def list_documents(self) -> List[UserDocument]:
        """Load every user document in the collection"""
        if not self.collection_dir.exists():
            return []

        documents = []
        for path in sorted(self.collection_dir.glob("*.json")):
            document = await self.get_document(path.stem)
            if document is not None:
                documents.append(document)
        return documents

    async def delete_document(self, user_id: str) -> bool:
        """Delete a user's document. Returns False if it did not exist."""
        path = self.get_document_path(user_id)
        if not path.exists():
            return False
        try:
            path.unlink()
        except OSError as e:
            raise wrap_external_exception(e, operation="delete_user_document", user_id=user_id)
        logger.info(f"Deleted user document {user_id}")
        return True
