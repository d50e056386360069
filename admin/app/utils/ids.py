"""Item identifier helpers.

  * generate_item_id(name) -> "<slug>-<6 random chars>"
  * repo_item_id(owner, repo) -> "<owner>-<repo>" (deterministic, lowercased)
  * validate_item_id(item_id) -> item_id, or InvalidItemIdError

Slug rules:
  * lowercase
  * runs of anything outside [a-z0-9] collapse to '-'
  * no leading/trailing '-'
  * at most 30 chars before the suffix

Ids name files and directories, so a valid id starts with a letter or digit
and contains only letters, digits, '_', '-' and '.' (repo names such as
"next.js"); '.', '..' and anything with a path separator are rejected.
"""

from __future__ import annotations

import re
import secrets
import string

from admin.app.errors import InvalidItemIdError

SLUG_MAX = 30
SUFFIX_LEN = 6
_SUFFIX_ALPHABET = string.ascii_letters + string.digits + "_-"
_NON_SLUG = re.compile(r"[^a-z0-9]+")
ITEM_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


def slugify(name: str, max_len: int = SLUG_MAX) -> str:
    base = _NON_SLUG.sub("-", (name or "").lower()).strip("-")
    return base[:max_len]


def random_suffix(n: int = SUFFIX_LEN) -> str:
    return "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(n))


def generate_item_id(name: str) -> str:
    base = slugify(name) or "item"
    return f"{base}-{random_suffix()}"


def repo_item_id(owner: str, repo: str) -> str:
    return f"{owner}-{repo}".lower()


def is_valid_item_id(item_id: object) -> bool:
    return isinstance(item_id, str) and ITEM_ID_RE.fullmatch(item_id) is not None


def validate_item_id(item_id: str) -> str:
    if not is_valid_item_id(item_id):
        raise InvalidItemIdError(f"invalid item id: {item_id!r}")
    return item_id


__all__ = [
    "ITEM_ID_RE",
    "slugify",
    "random_suffix",
    "generate_item_id",
    "repo_item_id",
    "is_valid_item_id",
    "validate_item_id",
]
