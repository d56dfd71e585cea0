from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class ImageUpload(BaseModel):
    """
    One analyze request as the pipeline sees it, independent of HTTP.

    `image` is None when the multipart body carried no `image` field.
    """

    image: Optional[bytes] = Field(default=None, repr=False)
    content_type: Optional[str] = None
    filename: Optional[str] = None
    question: Optional[str] = Field(
        default=None,
        description="Optional caller question, interpolated into the prompt.",
    )
