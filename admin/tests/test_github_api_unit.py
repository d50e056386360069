from unittest.mock import Mock, patch

import pytest
import requests

from admin.app.config import settings
from admin.app.errors import NotFoundError
from admin.app.services.github_api import (
    absolutize_readme,
    check_rate_limit,
    get_repo_info,
    get_repo_readme,
    get_repo_stats,
    parse_count,
    parse_github_url,
)

API_REPO = {
    "name": "widget",
    "html_url": "https://github.com/acme/widget",
    "homepage": "https://widget.dev",
    "description": "A tiny widget",
    "stargazers_count": 1234,
    "forks_count": 56,
    "language": "Rust",
    "license": {"spdx_id": "MIT"},
    "topics": ["cli", "rust"],
    "created_at": "2020-02-03T04:05:06Z",
    "updated_at": "2024-05-01T10:00:00Z",
}

REPO_PAGE = """
<html><head>
<meta property="og:description" content="A tiny widget, scraped">
</head><body>
<a data-analytics-event="{&quot;label&quot;:&quot;homepage&quot;}" href="https://widget.dev">widget.dev</a>
<span id="repo-stars-counter-star" title="1,234">1.2k</span>
<span id="repo-network-counter" title="56">56</span>
<span itemprop="programmingLanguage">Rust</span>
<a class="topic-tag" href="/topics/cli"> cli </a>
<relative-time datetime="2024-05-01T10:00:00Z">May 1</relative-time>
<article class="markdown-body"><h1>Widget</h1><img src="./docs/logo.png"><a href="LICENSE">license</a></article>
</body></html>
"""


def _response(status_code=200, json_data=None, text=""):
    resp = Mock()
    resp.status_code = status_code
    resp.json.return_value = json_data
    resp.text = text
    if status_code >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"HTTP {status_code}")
    return resp


class TestParseUrl:
    @pytest.mark.parametrize(
        "url,expected",
        [
            ("https://github.com/acme/widget", ("acme", "widget")),
            ("https://github.com/acme/widget.git", ("acme", "widget")),
            ("https://github.com/acme/widget/tree/main/src", ("acme", "widget")),
            ("https://github.com/acme/widget?tab=readme", ("acme", "widget")),
            ("https://example.com/acme/widget", None),
            ("", None),
        ],
    )
    def test_parse_github_url(self, url, expected):
        assert parse_github_url(url) == expected

    def test_parse_count(self):
        assert parse_count("1,234") == 1234
        assert parse_count("1.2k") == 1200
        assert parse_count("3M") == 3_000_000
        assert parse_count("n/a") == 0
        assert parse_count(None) == 0


class TestRepoInfo:
    def test_from_api(self):
        with patch("requests.get", return_value=_response(200, API_REPO)) as mock_get:
            info = get_repo_info("https://github.com/acme/widget")

        assert mock_get.call_args[0][0] == "https://api.github.com/repos/acme/widget"
        assert mock_get.call_args[1]["timeout"] == settings.HTTP_TIMEOUT_S
        assert info["id"] == "acme-widget"
        assert info["name"] == "widget"
        assert info["summary"] == "A tiny widget"
        assert info["homepage"] == "https://widget.dev"
        assert info["github"] == {
            "stars": 1234,
            "forks": 56,
            "language": "Rust",
            "license": "MIT",
            "lastUpdate": "2024-05-01",
            "topics": ["cli", "rust"],
            "createdAt": "2020-02-03",
        }

    def test_token_header(self, monkeypatch):
        monkeypatch.setattr(settings, "GITHUB_TOKEN", "ghp_test")
        with patch("requests.get", return_value=_response(200, API_REPO)) as mock_get:
            get_repo_info("https://github.com/acme/widget")
        assert mock_get.call_args[1]["headers"]["Authorization"] == "Bearer ghp_test"

    def test_no_token_no_header(self):
        with patch("requests.get", return_value=_response(200, API_REPO)) as mock_get:
            get_repo_info("https://github.com/acme/widget")
        assert "Authorization" not in mock_get.call_args[1]["headers"]

    def test_missing_repo(self):
        with patch("requests.get", return_value=_response(404, {})):
            with pytest.raises(NotFoundError):
                get_repo_info("https://github.com/acme/nope")

    def test_not_a_github_url(self):
        with pytest.raises(ValueError):
            get_repo_info("https://example.com/post")

    def test_rate_limited_falls_back_to_html(self):
        responses = [_response(403, {}), _response(200, text=REPO_PAGE)]
        with patch("requests.get", side_effect=responses) as mock_get:
            info = get_repo_info("https://github.com/acme/widget")

        assert mock_get.call_args_list[1][0][0] == "https://github.com/acme/widget"
        assert info["id"] == "acme-widget"
        assert info["summary"] == "A tiny widget, scraped"
        assert info["homepage"] == "https://widget.dev"
        assert info["github"]["stars"] == 1234
        assert info["github"]["forks"] == 56
        assert info["github"]["language"] == "Rust"
        assert info["github"]["topics"] == ["cli"]
        assert info["github"]["lastUpdate"] == "2024-05-01"


class TestRepoStats:
    def test_from_api(self):
        with patch("requests.get", return_value=_response(200, API_REPO)):
            stats = get_repo_stats("https://github.com/acme/widget")
        assert stats == {
            "stars": 1234,
            "forks": 56,
            "language": "Rust",
            "license": "MIT",
            "lastUpdate": "2024-05-01",
        }

    def test_rate_limited_scrapes(self):
        responses = [_response(403, {}), _response(200, text=REPO_PAGE)]
        with patch("requests.get", side_effect=responses):
            stats = get_repo_stats("https://github.com/acme/widget")
        assert stats["stars"] == 1234

    def test_failures_return_none(self):
        with patch("requests.get", return_value=_response(500, {})):
            assert get_repo_stats("https://github.com/acme/widget") is None
        with patch("requests.get", side_effect=requests.Timeout("slow")):
            assert get_repo_stats("https://github.com/acme/widget") is None
        assert get_repo_stats("https://example.com/x") is None


class TestReadme:
    def test_relative_links_absolutized(self):
        html = '<img src="docs/a.png"><img src="https://x/y.png"><a href="./CONTRIBUTING.md">c</a><a href="#top">t</a>'
        out = absolutize_readme(html, "acme", "widget")
        assert 'src="https://raw.githubusercontent.com/acme/widget/HEAD/docs/a.png"' in out
        assert 'src="https://x/y.png"' in out
        assert 'href="https://github.com/acme/widget/blob/HEAD/CONTRIBUTING.md"' in out
        assert 'href="#top"' in out

    def test_readme_from_api(self):
        with patch("requests.get", return_value=_response(200, text='<img src="logo.png">')) as mock_get:
            out = get_repo_readme("https://github.com/acme/widget")
        assert mock_get.call_args[1]["headers"]["Accept"] == "application/vnd.github.html"
        assert out == '<img src="https://raw.githubusercontent.com/acme/widget/HEAD/logo.png">'

    def test_readme_rate_limited_scrapes_page(self):
        responses = [_response(403), _response(200, text=REPO_PAGE)]
        with patch("requests.get", side_effect=responses):
            out = get_repo_readme("https://github.com/acme/widget")
        assert "<h1>Widget</h1>" in out
        assert "https://raw.githubusercontent.com/acme/widget/HEAD/docs/logo.png" in out
        assert "https://github.com/acme/widget/blob/HEAD/LICENSE" in out

    def test_readme_failure_is_none(self):
        with patch("requests.get", return_value=_response(404)):
            assert get_repo_readme("https://github.com/acme/widget") is None


class TestRateLimit:
    def test_reports_remaining(self):
        payload = {"rate": {"remaining": 42, "limit": 60, "reset": 1700000000}}
        with patch("requests.get", return_value=_response(200, payload)):
            rate = check_rate_limit()
        assert rate["remaining"] == 42
        assert rate["limit"] == 60
        assert rate["reset"].startswith("2023-11-14")

    def test_failure_means_zero_remaining(self):
        with patch("requests.get", side_effect=requests.ConnectionError("down")):
            assert check_rate_limit()["remaining"] == 0
