# admin/app/models.py
from typing import List, Literal, Optional

from pydantic import BaseModel, field_validator


class ParseUrlIn(BaseModel):
    url: str

    @field_validator("url")
    @classmethod
    def _strip(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("url is required")
        return v


class FetchContentIn(BaseModel):
    url: str
    type: Literal["repo", "article"] = "article"


class FetchContentOut(BaseModel):
    content: Optional[str] = None


class ItemCreatedOut(BaseModel):
    ok: bool = True
    id: str
    images: List[str] = []
    thumbnail: Optional[str] = None


class OkOut(BaseModel):
    ok: bool = True
