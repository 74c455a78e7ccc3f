from datetime import datetime, timezone

from pydantic import BaseModel, Field


class UploadRecord(BaseModel):
    """Remote location of one distinct piece of image content."""

    fingerprint: str
    image_id: str
    remote_url: str
    source_path: str
    uploaded_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
