from unittest.mock import Mock, patch

import requests
from bs4 import BeautifulSoup

from admin.app.services.articles import extract_content, fetch_article_content, get_article_info

BODY_TEXT = "Lorem ipsum dolor sit amet, consectetur adipiscing elit. " * 6

ARTICLE_PAGE = f"""
<html><head>
<title>Fallback title</title>
<meta property="og:title" content=" Writing a Parser ">
<meta name="description" content="How to write a parser">
<meta property="og:image" content="https://blog.example.com/cover.png">
<script>track()</script>
</head><body>
<nav>Home | About</nav>
<div class="sidebar">related links</div>
<article>
  <p>{BODY_TEXT}</p>
  <img src="/img/diagram.png">
  <img src="data:image/png;base64,AAAA">
  <a href="/posts/next">next</a>
  <a href="https://other.example.com/">elsewhere</a>
  <a href="#section">jump</a>
  <script>inline()</script>
</article>
<footer>copyright</footer>
</body></html>
"""


def _response(status_code=200, text=""):
    resp = Mock()
    resp.status_code = status_code
    resp.text = text
    if status_code >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"HTTP {status_code}")
    return resp


class TestArticleInfo:
    def test_open_graph_metadata(self):
        with patch("requests.get", return_value=_response(200, ARTICLE_PAGE)):
            info = get_article_info("https://blog.example.com/posts/parser")

        assert info["type"] == "article"
        assert info["name"] == "Writing a Parser"
        assert info["summary"] == "How to write a parser"
        assert info["thumbnail"] == "https://blog.example.com/cover.png"
        assert info["images"] == ["https://blog.example.com/cover.png"]
        assert info["id"].startswith("writing-a-parser-")

    def test_title_tag_fallback(self):
        page = "<html><head><title> Plain </title></head><body></body></html>"
        with patch("requests.get", return_value=_response(200, page)):
            info = get_article_info("https://blog.example.com/x")
        assert info["name"] == "Plain"
        assert info["summary"] == "暂无描述"
        assert info["images"] == []

    def test_unreachable_page_gives_placeholder(self):
        with patch("requests.get", side_effect=requests.ConnectionError("down")):
            info = get_article_info("https://blog.example.com/x")
        assert info["name"] == "文章"
        assert info["url"] == "https://blog.example.com/x"
        assert info["images"] == []

    def test_http_error_gives_placeholder(self):
        with patch("requests.get", return_value=_response(500)):
            info = get_article_info("https://blog.example.com/x")
        assert info["name"] == "文章"


class TestArticleContent:
    def test_main_block_extracted_and_links_absolutized(self):
        html = extract_content(ARTICLE_PAGE, "https://blog.example.com/posts/parser")
        soup = BeautifulSoup(html, "lxml")

        assert "Lorem ipsum" in html
        assert "related links" not in html
        assert "copyright" not in html
        assert not soup.find_all("script")

        srcs = [img["src"] for img in soup.find_all("img")]
        assert srcs == ["https://blog.example.com/img/diagram.png", "data:image/png;base64,AAAA"]
        links = {a.get_text(): a for a in soup.find_all("a")}
        assert links["next"]["href"] == "https://blog.example.com/posts/next"
        assert links["elsewhere"]["href"] == "https://other.example.com/"
        assert links["jump"]["href"] == "#section"
        assert all(a["target"] == "_blank" for a in links.values())

    def test_short_content_falls_back_to_body(self):
        page = "<html><body><article>tiny</article><p>outside</p></body></html>"
        html = extract_content(page, "https://blog.example.com/x")
        assert "tiny" in html
        assert "outside" in html

    def test_fetch_failure_is_none(self):
        with patch("requests.get", side_effect=requests.Timeout("slow")):
            assert fetch_article_content("https://blog.example.com/x") is None

    def test_fetch_passes_timeout(self):
        with patch("requests.get", return_value=_response(200, ARTICLE_PAGE)) as mock_get:
            assert "Lorem ipsum" in fetch_article_content("https://blog.example.com/posts/parser")
        assert mock_get.call_args[1]["timeout"] == 30.0
