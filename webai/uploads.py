"""Project asset storage on the local filesystem."""

from __future__ import annotations

import logging
import os
import re
import uuid
from dataclasses import dataclass

import aiofiles
import aiofiles.os

from webai.errors import ValidationFailed

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = "png"
_EXTENSION = re.compile(r"^[a-z0-9]{1,8}$")


@dataclass(frozen=True)
class StoredFile:
    public_path: str
    size_bytes: int


class AssetStore:
    """
    Validates uploads and writes them to `<directory>/<project_id>/<uuid>.<ext>`.
    Files are served back under `/uploads/<project_id>/<uuid>.<ext>`.
    """

    def __init__(self, directory: str, max_size_bytes: int, allowed_types: list[str]):
        self.directory = directory
        self.max_size_bytes = max_size_bytes
        self.allowed_types = allowed_types

    def validate(self, content_type: str | None, size_bytes: int) -> None:
        """
        Raises:
            ValidationFailed: If the type is not allowed or the file is too large.
        """
        if content_type not in self.allowed_types:
            raise ValidationFailed(
                f"Invalid file type: {content_type}. "
                f"Allowed: {', '.join(self.allowed_types)}"
            )
        if size_bytes > self.max_size_bytes:
            raise ValidationFailed(
                f"File too large. Max: {self.max_size_bytes // (1024 * 1024)}MB"
            )

    @staticmethod
    def extension_for(filename: str | None) -> str:
        ext = (filename or "").rsplit(".", 1)[-1].lower() if "." in (filename or "") else ""
        return ext if _EXTENSION.match(ext) else DEFAULT_EXTENSION

    async def save(
        self, project_id: str, filename: str | None, content_type: str | None, data: bytes
    ) -> StoredFile:
        self.validate(content_type, len(data))

        stored_name = f"{uuid.uuid4()}.{self.extension_for(filename)}"
        project_dir = os.path.join(self.directory, project_id)
        await aiofiles.os.makedirs(project_dir, exist_ok=True)

        async with aiofiles.open(os.path.join(project_dir, stored_name), "wb") as f:
            await f.write(data)

        logger.info(f"Stored {len(data)} bytes for project {project_id}")
        return StoredFile(
            public_path=f"/uploads/{project_id}/{stored_name}",
            size_bytes=len(data),
        )
