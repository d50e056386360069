from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from admin.app.config import settings
from admin.app.utils.ids import ITEM_ID_RE

ItemType = Literal["repo", "article"]

# Present only in the full variant
CONTENT_FIELD = "originalContent"


def now_iso() -> str:
    """UTC timestamp in the JS toISOString() shape (millisecond precision, Z)."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def normalize_tags(tags: Any) -> List[str]:
    """Trimmed, lowercase, de-duplicated (first occurrence wins)."""
    if tags is None:
        return []
    if isinstance(tags, str):
        tags = tags.replace("，", ",").split(",")
    out: List[str] = []
    for t in tags:
        t = str(t).strip().lower()
        if t and t not in out:
            out.append(t)
    return out


class GithubStats(BaseModel):
    model_config = ConfigDict(extra="allow")

    stars: int = 0
    forks: int = 0
    language: Optional[str] = None
    license: Optional[str] = None
    lastUpdate: Optional[str] = None
    topics: List[str] = Field(default_factory=list)
    createdAt: Optional[str] = None


class ItemRecord(BaseModel):
    """One catalog entry; field names follow the published JSON."""

    model_config = ConfigDict(extra="allow")

    id: str = Field(min_length=1, pattern=ITEM_ID_RE.pattern)
    type: ItemType = "repo"
    name: str = ""
    nameEn: Optional[str] = None
    url: Optional[str] = None
    homepage: Optional[str] = None
    summary: str = ""
    description: Optional[str] = None
    notes: Optional[str] = None
    images: List[str] = Field(default_factory=list)
    thumbnail: Optional[str] = None
    category: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    github: Optional[GithubStats] = None
    archived: bool = False
    createdAt: str = Field(default_factory=now_iso)
    updatedAt: str = Field(default_factory=now_iso)
    originalContent: Optional[str] = Field(default=None, repr=False)

    @field_validator("tags", mode="before")
    @classmethod
    def _normalize_tags(cls, v: Any) -> List[str]:
        return normalize_tags(v)

    @model_validator(mode="after")
    def _images_live_under_item_dir(self) -> "ItemRecord":
        prefix = f"{settings.PUBLIC_IMAGES_PREFIX.rstrip('/')}/{self.id}/"
        for p in self.images:
            if not p.startswith(prefix):
                raise ValueError(f"image outside {prefix}: {p}")
        if self.thumbnail and not self.thumbnail.startswith(prefix):
            raise ValueError(f"thumbnail outside {prefix}: {self.thumbnail}")
        return self

    def to_full(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")

    def to_light(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude={CONTENT_FIELD})


def build_item_record(
    item_id: str,
    data: Dict[str, Any],
    *,
    images: Optional[List[str]] = None,
    thumbnail: Optional[str] = None,
    original_content: Optional[str] = None,
) -> ItemRecord:
    """Assemble a new record from caller-supplied fields plus ingested images."""
    now = now_iso()
    name = data.get("name") or ""
    return ItemRecord(
        id=item_id,
        type=data.get("type") or "repo",
        name=name,
        nameEn=data.get("nameEn") or name,
        url=data.get("url"),
        homepage=data.get("homepage"),
        summary=data.get("summary") or "",
        description=data.get("description") or None,
        notes=data.get("notes") or None,
        images=list(images or []),
        thumbnail=thumbnail,
        category=data.get("category"),
        tags=data.get("tags") or [],
        github=data.get("github") or None,
        archived=False,
        createdAt=now,
        updatedAt=now,
        originalContent=original_content,
    )


__all__ = [
    "ItemType",
    "CONTENT_FIELD",
    "GithubStats",
    "ItemRecord",
    "build_item_record",
    "normalize_tags",
    "now_iso",
]
