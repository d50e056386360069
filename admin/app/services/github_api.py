"""GitHub repository metadata.

REST API first (token from GITHUB_TOKEN raises the rate limit); when the API
answers 403 (rate limit exhausted) the public repository page is scraped
instead.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urljoin

import requests
from bs4 import BeautifulSoup

from admin.app.config import settings
from admin.app.errors import FetchError, NotFoundError
from admin.app.utils.ids import repo_item_id

log = logging.getLogger(__name__)

GITHUB_URL_RE = re.compile(r"github\.com/([^/]+)/([^/?#]+)")
RAW_BASE = "https://raw.githubusercontent.com/{owner}/{repo}/HEAD/"
BLOB_BASE = "https://github.com/{owner}/{repo}/blob/HEAD/"
NO_DESCRIPTION = "暂无描述"

_REL_SRC = re.compile(r'src="(?!https?:|data:)([^"]+)"')
_REL_HREF = re.compile(r'href="(?!https?:|#|mailto:)([^"]+)"')
_LEADING_DOT_SLASH = re.compile(r"^\.?/")


def parse_github_url(url: str) -> Optional[Tuple[str, str]]:
    """Return (owner, repo) for a github.com URL, else None."""
    m = GITHUB_URL_RE.search(url or "")
    if not m:
        return None
    repo = m.group(2)
    if repo.endswith(".git"):
        repo = repo[: -len(".git")]
    return m.group(1), repo


def _today() -> str:
    return datetime.now(timezone.utc).date().isoformat()


def _date_part(ts: Optional[str]) -> Optional[str]:
    return ts.split("T")[0] if ts else None


# --- REST ---------------------------------------------------------------------
def _api_headers(accept: str = "application/vnd.github+json") -> Dict[str, str]:
    headers = {"Accept": accept, "User-Agent": settings.HTTP_USER_AGENT}
    if settings.GITHUB_TOKEN:
        headers["Authorization"] = f"Bearer {settings.GITHUB_TOKEN}"
    return headers


def _api_get(path: str, accept: str = "application/vnd.github+json") -> requests.Response:
    url = f"{settings.GITHUB_API_URL.rstrip('/')}{path}"
    try:
        return requests.get(url, headers=_api_headers(accept), timeout=settings.HTTP_TIMEOUT_S)
    except requests.RequestException as e:
        raise FetchError(f"Network error: {e}", url=url) from e


def _stats_from_api(data: Dict[str, Any]) -> Dict[str, Any]:
    lic = data.get("license") or {}
    return {
        "stars": data.get("stargazers_count", 0),
        "forks": data.get("forks_count", 0),
        "language": data.get("language"),
        "license": lic.get("spdx_id") if isinstance(lic, dict) else None,
        "lastUpdate": _date_part(data.get("updated_at")),
    }


# --- HTML fallback ------------------------------------------------------------
def _fetch_repo_page(owner: str, repo: str) -> BeautifulSoup:
    url = f"https://github.com/{owner}/{repo}"
    try:
        resp = requests.get(
            url,
            headers={"User-Agent": settings.HTTP_USER_AGENT},
            timeout=settings.HTTP_TIMEOUT_S,
        )
    except requests.RequestException as e:
        raise FetchError(f"Network error: {e}", url=url) from e
    if resp.status_code == 404:
        raise NotFoundError(f"repository not found: {owner}/{repo}")
    if not 200 <= resp.status_code < 300:
        raise FetchError(f"HTTP {resp.status_code}", url=url, status_code=resp.status_code)
    return BeautifulSoup(resp.text, "lxml")


def parse_count(text: Optional[str]) -> int:
    """'1,234' -> 1234, '1.2k' -> 1200, '3m' -> 3000000; junk -> 0."""
    if not text:
        return 0
    t = text.strip().lower().replace(",", "")
    mult = 1
    if t.endswith("k"):
        mult, t = 1_000, t[:-1]
    elif t.endswith("m"):
        mult, t = 1_000_000, t[:-1]
    try:
        return int(round(float(t) * mult))
    except ValueError:
        return 0


def _counter(soup: BeautifulSoup, css_id: str) -> int:
    el = soup.find(id=css_id)
    if el is None:
        return 0
    return parse_count(el.get("title") or el.get_text())


def _stats_from_html(soup: BeautifulSoup) -> Dict[str, Any]:
    lang = soup.select_one('[itemprop="programmingLanguage"]')
    lic = soup.select_one('a[href*="/blob/"][href*="LICENSE"]')
    rel = soup.find("relative-time")
    return {
        "stars": _counter(soup, "repo-stars-counter-star"),
        "forks": _counter(soup, "repo-network-counter"),
        "language": lang.get_text(strip=True) if lang else None,
        "license": lic.get_text(strip=True) if lic else None,
        "lastUpdate": _date_part(rel.get("datetime")) if rel else _today(),
    }


def _repo_info_from_html(owner: str, repo: str) -> Dict[str, Any]:
    soup = _fetch_repo_page(owner, repo)
    og = soup.find("meta", attrs={"property": "og:description"})
    about = soup.select_one("p.f4.my-3")
    summary = (og.get("content") if og else None) or (
        about.get_text(strip=True) if about else ""
    )
    homepage = soup.select_one('a[data-analytics-event*="homepage"]')
    stats = _stats_from_html(soup)
    log.info("[github] %s/%s info scraped from HTML", owner, repo)
    return {
        "id": repo_item_id(owner, repo),
        "name": repo,
        "nameEn": repo,
        "url": f"https://github.com/{owner}/{repo}",
        "homepage": homepage.get("href") if homepage else None,
        "summary": summary or NO_DESCRIPTION,
        "github": {
            **stats,
            "topics": [a.get_text(strip=True) for a in soup.select("a.topic-tag")],
            # the page does not expose a creation date
            "createdAt": stats["lastUpdate"],
        },
    }


# --- public API ---------------------------------------------------------------
def get_repo_info(url: str) -> Dict[str, Any]:
    parsed = parse_github_url(url)
    if not parsed:
        raise ValueError(f"not a GitHub repository URL: {url}")
    owner, repo = parsed

    resp = _api_get(f"/repos/{owner}/{repo}")
    if resp.status_code == 404:
        raise NotFoundError(f"repository not found: {owner}/{repo}")
    if resp.status_code == 403:
        log.warning("[github] API rate limit hit, falling back to HTML for %s/%s", owner, repo)
        return _repo_info_from_html(owner, repo)
    if not 200 <= resp.status_code < 300:
        raise FetchError(f"HTTP {resp.status_code}", url=url, status_code=resp.status_code)

    data = resp.json()
    return {
        "id": repo_item_id(owner, repo),
        "name": data.get("name") or repo,
        "nameEn": data.get("name") or repo,
        "url": data.get("html_url") or f"https://github.com/{owner}/{repo}",
        "homepage": data.get("homepage") or None,
        "summary": data.get("description") or NO_DESCRIPTION,
        "github": {
            **_stats_from_api(data),
            "topics": data.get("topics") or [],
            "createdAt": _date_part(data.get("created_at")),
        },
    }


def get_repo_stats(url: str) -> Optional[Dict[str, Any]]:
    """stars/forks/language/lastUpdate/license, or None when unavailable."""
    parsed = parse_github_url(url)
    if not parsed:
        return None
    owner, repo = parsed
    try:
        resp = _api_get(f"/repos/{owner}/{repo}")
        if resp.status_code == 403:
            log.warning("[github] API rate limit hit, scraping stats for %s/%s", owner, repo)
            return _stats_from_html(_fetch_repo_page(owner, repo))
        if not 200 <= resp.status_code < 300:
            log.warning("[github] stats for %s/%s: HTTP %s", owner, repo, resp.status_code)
            return None
        return _stats_from_api(resp.json())
    except (FetchError, NotFoundError, ValueError) as e:
        log.warning("[github] stats for %s/%s failed: %s", owner, repo, e)
        return None


def _rel(ref: str) -> str:
    return _LEADING_DOT_SLASH.sub("", ref)


def absolutize_readme(html: str, owner: str, repo: str) -> str:
    raw = RAW_BASE.format(owner=owner, repo=repo)
    blob = BLOB_BASE.format(owner=owner, repo=repo)
    html = _REL_SRC.sub(lambda m: f'src="{raw}{_rel(m.group(1))}"', html)
    return _REL_HREF.sub(lambda m: f'href="{blob}{_rel(m.group(1))}"', html)


def _readme_from_html(owner: str, repo: str) -> Optional[str]:
    soup = _fetch_repo_page(owner, repo)
    node = (
        soup.select_one("article.markdown-body")
        or soup.select_one(".markdown-body")
        or soup.select_one('[data-target="readme-toc.content"]')
    )
    if node is None:
        log.warning("[github] no README found on page for %s/%s", owner, repo)
        return None
    raw = RAW_BASE.format(owner=owner, repo=repo)
    blob = BLOB_BASE.format(owner=owner, repo=repo)
    for img in node.find_all("img"):
        src = img.get("src")
        if src and not src.startswith(("http", "data:")):
            img["src"] = urljoin(raw, _rel(src))
    for a in node.find_all("a"):
        href = a.get("href")
        if href and not href.startswith(("http", "#", "mailto:")):
            a["href"] = urljoin(blob, _rel(href))
    return node.decode_contents()


def get_repo_readme(url: str) -> Optional[str]:
    """Rendered README HTML with absolute links, or None."""
    parsed = parse_github_url(url)
    if not parsed:
        return None
    owner, repo = parsed
    try:
        resp = _api_get(f"/repos/{owner}/{repo}/readme", accept="application/vnd.github.html")
        if resp.status_code == 403:
            log.warning("[github] API rate limit hit, scraping README for %s/%s", owner, repo)
            return _readme_from_html(owner, repo)
        if not 200 <= resp.status_code < 300:
            log.warning("[github] README for %s/%s: HTTP %s", owner, repo, resp.status_code)
            return None
        return absolutize_readme(resp.text, owner, repo)
    except (FetchError, NotFoundError) as e:
        log.warning("[github] README for %s/%s failed: %s", owner, repo, e)
        return None


def check_rate_limit() -> Dict[str, Any]:
    try:
        resp = _api_get("/rate_limit")
        resp.raise_for_status()
        rate = resp.json()["rate"]
        reset = datetime.fromtimestamp(int(rate["reset"]), tz=timezone.utc).isoformat()
        return {"remaining": int(rate["remaining"]), "limit": int(rate["limit"]), "reset": reset}
    except (FetchError, requests.RequestException, KeyError, TypeError, ValueError) as e:
        log.warning("[github] rate limit check failed: %s", e)
        return {"remaining": 0, "limit": 60, "reset": None}


__all__ = [
    "parse_github_url",
    "parse_count",
    "get_repo_info",
    "get_repo_stats",
    "get_repo_readme",
    "absolutize_readme",
    "check_rate_limit",
]
