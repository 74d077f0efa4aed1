"""Shared fixtures: an in-memory documentation site served through httpx.MockTransport."""

import httpx
import pytest

BASE_URL = "https://docs.example.com"


def page(title: str, body: str = "", links: tuple[str, ...] = ()) -> str:
    """A minimal Mintlify-like page with sidebar navigation."""
    nav = "".join(f'<a href="{href}">{href}</a>' for href in links)
    return (
        f"<html><head><title>{title} - Example</title></head><body>"
        f'<nav class="sidebar">{nav}</nav>'
        f"<main><h1>{title}</h1>{body}</main>"
        "<footer>Powered by Mintlify</footer>"
        "</body></html>"
    )


def sitemap(*paths: str) -> str:
    urls = "".join(f"<url><loc>{BASE_URL}{path}</loc></url>" for path in paths)
    return f'<?xml version="1.0"?><urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">{urls}</urlset>'


class MockSite:
    """Routes requests by path; records every URL requested."""

    def __init__(self, routes: dict):
        self.routes = routes
        self.requests: list[str] = []
        self.hooks: dict = {}

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path or "/"
        self.requests.append(path)

        hook = self.hooks.get(path)
        if hook is not None:
            hook()

        entry = self.routes.get(path)
        if entry is None:
            return httpx.Response(404, text="Not found")
        if entry == "connect-error":
            raise httpx.ConnectError("connection refused", request=request)
        if isinstance(entry, tuple):
            status, body = entry
            return httpx.Response(status, text=body)
        if isinstance(entry, dict):
            return httpx.Response(200, json=entry)
        return httpx.Response(200, text=entry)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def count(self, path: str) -> int:
        return self.requests.count(path)


@pytest.fixture
def docs_site() -> MockSite:
    """Three pages listed in the sitemap plus one reachable only by links."""
    return MockSite(
        {
            "/sitemap.xml": sitemap("/introduction", "/guides/setup", "/blog/news"),
            "/introduction": page(
                "Introduction",
                "<p>Welcome to the API.</p>"
                '<p>Read the <a href="/guides/advanced">advanced guide</a>.</p>'
                '<pre><code class="language-python">import example\nexample.run()\n</code></pre>',
                links=("/introduction", "/guides/setup"),
            ),
            "/guides/setup": page("Setup", "<p>Install the package.</p>"),
            "/guides/advanced": page("Advanced", "<p>Tune everything.</p>"),
            "/blog/news": page("News", "<p>Not documentation.</p>"),
        }
    )
