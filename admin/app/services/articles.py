from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from urllib.parse import urljoin, urlsplit

import requests
from bs4 import BeautifulSoup  # requires beautifulsoup4 and lxml

from admin.app.config import settings
from admin.app.utils.ids import generate_item_id

log = logging.getLogger(__name__)

UNKNOWN_TITLE = "未知标题"
PLACEHOLDER_TITLE = "文章"
NO_DESCRIPTION = "暂无描述"

NOISE_SELECTORS = "script, style, nav, header, footer, aside, .ads, .comments, .sidebar"
CONTENT_SELECTORS = [
    "article",
    ".article",
    ".post-content",
    ".entry-content",
    ".content",
    ".markdown-body",
    ".post",
    "main",
    "#content",
    ".main-content",
]
MIN_CONTENT_CHARS = 200


def _get_html(url: str) -> str:
    resp = requests.get(
        url,
        headers={"User-Agent": settings.HTTP_USER_AGENT},
        timeout=settings.HTTP_TIMEOUT_S,
    )
    resp.raise_for_status()
    return resp.text


def _meta(soup: BeautifulSoup, **attrs: str) -> Optional[str]:
    tag = soup.find("meta", attrs=attrs)
    if tag is None:
        return None
    content = (tag.get("content") or "").strip()
    return content or None


def get_article_info(url: str) -> Dict[str, Any]:
    """
    Title, summary and preview image of an arbitrary web page.
    ``images`` holds remote candidate sources (og:image), not ingested paths.
    Never raises: an unreachable page yields a placeholder record.
    """
    try:
        soup = BeautifulSoup(_get_html(url), "lxml")
    except requests.RequestException as e:
        log.warning("[articles] info for %s failed: %s", url, e)
        return {
            "id": generate_item_id(url),
            "type": "article",
            "name": PLACEHOLDER_TITLE,
            "url": url,
            "summary": NO_DESCRIPTION,
            "images": [],
        }

    title_tag = soup.find("title")
    title = (
        _meta(soup, property="og:title")
        or (title_tag.get_text(strip=True) if title_tag else None)
        or UNKNOWN_TITLE
    )
    summary = _meta(soup, property="og:description") or _meta(soup, name="description") or ""
    image = _meta(soup, property="og:image")
    return {
        "id": generate_item_id(title),
        "type": "article",
        "name": title.strip(),
        "url": url,
        "summary": summary.strip() or NO_DESCRIPTION,
        "thumbnail": image,
        "images": [image] if image else [],
    }


def _absolute(base: str, ref: str) -> str:
    return urljoin(base, ref if ref.startswith("/") else "/" + ref)


def extract_content(html: str, url: str) -> str:
    """Main readable block of ``html`` with absolute links; body as fallback."""
    soup = BeautifulSoup(html, "lxml")
    for tag in soup.select(NOISE_SELECTORS):
        tag.decompose()

    node = None
    for selector in CONTENT_SELECTORS:
        el = soup.select_one(selector)
        if el is not None and len(el.get_text().strip()) > MIN_CONTENT_CHARS:
            node = el
            break
    if node is None:
        node = soup.body
    if node is None:
        return ""

    parts = urlsplit(url)
    base = f"{parts.scheme}://{parts.netloc}"
    for img in node.find_all("img"):
        src = img.get("src")
        if src and not src.startswith(("http", "data:")):
            img["src"] = _absolute(base, src)
    for a in node.find_all("a"):
        href = a.get("href")
        if href and not href.startswith(("http", "#", "mailto:")):
            a["href"] = _absolute(base, href)
        a["target"] = "_blank"
    return node.decode_contents()


def fetch_article_content(url: str) -> Optional[str]:
    try:
        html = _get_html(url)
    except requests.RequestException as e:
        log.warning("[articles] content for %s failed: %s", url, e)
        return None
    return extract_content(html, url)


__all__ = ["get_article_info", "extract_content", "fetch_article_content"]
