from pydantic import BaseModel, ConfigDict, Field
from typing import Set

from requestkit.uploads.sniff import media_type_essence


class UploadConfig(BaseModel):
    max_upload_size: int = Field(default=1024 * 1024 * 1024, ge=0)
    # empty set means every sniffed type is accepted
    allowed_types: Set[str] = Field(default_factory=set)

    @classmethod
    def from_settings(cls, settings) -> "UploadConfig":
        return cls(
            max_upload_size=settings.MAX_UPLOAD_SIZE,
            allowed_types=set(settings.ALLOWED_FILE_TYPES),
        )

    def is_allowed(self, content_type: str) -> bool:
        """
        Case-insensitive membership test. An allow-list entry without
        parameters also admits the same type with parameters.
        """
        if not self.allowed_types:
            return True
        sniffed = content_type.strip().lower()
        essence = media_type_essence(content_type)
        for allowed in self.allowed_types:
            allowed = allowed.strip().lower()
            if allowed == sniffed or allowed == essence:
                return True
        return False


class UploadedFile(BaseModel):
    model_config = ConfigDict(frozen=True)

    new_file_name: str
    original_file_name: str
    file_size: int
    content_type: str
