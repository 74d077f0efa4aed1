"""Find the pages of a documentation site."""

from collections.abc import Iterable
from urllib.parse import urljoin, urlparse
from xml.etree import ElementTree

import httpx
from bs4 import BeautifulSoup
from rich.console import Console

from mintlify_scraper.config import DEFAULT_EXCLUDE_PATTERNS
from mintlify_scraper.models import normalize_url

console = Console()

NAVIGATION_LINK_SELECTORS = "nav a, .sidebar a, [class*='nav'] a"

MANIFEST_FILES = ("mint.json", "docs.json")

ASSET_SUFFIXES = (
    ".js",
    ".css",
    ".png",
    ".jpg",
    ".jpeg",
    ".gif",
    ".svg",
    ".ico",
    ".woff",
    ".woff2",
    ".ttf",
    ".xml",
    ".json",
    ".pdf",
    ".zip",
)


def is_documentation_url(url: str, exclude_patterns: Iterable[str] = DEFAULT_EXCLUDE_PATTERNS) -> bool:
    """False for URLs containing a denylisted path fragment."""
    return not any(pattern in url for pattern in exclude_patterns)


def is_same_site(url: str, base_url: str) -> bool:
    """True for http(s) URLs on the base host, at or below the base path."""
    parsed = urlparse(url)
    base = urlparse(base_url)
    if parsed.scheme not in ("http", "https") or parsed.netloc.lower() != base.netloc.lower():
        return False
    base_path = base.path.rstrip("/")
    return not base_path or parsed.path == base_path or parsed.path.startswith(base_path + "/")


def _dedupe(urls: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    ordered: list[str] = []
    for url in urls:
        if url not in seen:
            seen.add(url)
            ordered.append(url)
    return ordered


def parse_sitemap(xml: bytes | str) -> tuple[list[str], bool]:
    """Return the ``<loc>`` values of a sitemap and whether it is a sitemap index."""
    root = ElementTree.fromstring(xml)
    locs = [
        element.text.strip()
        for element in root.iter()
        if element.tag.rsplit("}", 1)[-1] == "loc" and element.text and element.text.strip()
    ]
    return locs, root.tag.endswith("sitemapindex")


def extract_navigation_links(
    html: str,
    page_url: str,
    base_url: str,
    exclude_patterns: Iterable[str] = DEFAULT_EXCLUDE_PATTERNS,
    selectors: str = NAVIGATION_LINK_SELECTORS,
) -> list[str]:
    """Same-site documentation links under ``base_url`` found inside ``selectors``."""
    soup = BeautifulSoup(html, "html.parser")
    patterns = tuple(exclude_patterns)
    links = []

    for a_tag in soup.select(selectors):
        href = a_tag.get("href")
        if not href or href.startswith(("#", "javascript:", "mailto:", "tel:")):
            continue

        full_url = normalize_url(urljoin(page_url, href))
        if not is_same_site(full_url, base_url):
            continue
        if urlparse(full_url).path.lower().endswith(ASSET_SUFFIXES):
            continue
        if is_documentation_url(full_url, patterns):
            links.append(full_url)

    return _dedupe(links)


def extract_manifest_pages(data: dict) -> list[str]:
    """Page references from a ``mint.json``/``docs.json`` navigation tree."""
    pages: list[str] = []

    def walk(node) -> None:
        if isinstance(node, str):
            pages.append(node)
        elif isinstance(node, list):
            for item in node:
                walk(item)
        elif isinstance(node, dict):
            for key in ("pages", "groups", "tabs", "anchors", "versions", "languages", "navigation"):
                if key in node:
                    walk(node[key])
            if "href" in node and isinstance(node["href"], str):
                pages.append(node["href"])

    walk(data.get("navigation", []))

    for tab in data.get("tabs", []):
        if isinstance(tab, dict) and isinstance(tab.get("url"), str):
            pages.append(tab["url"])

    return _dedupe(pages)


class PageDiscovery:
    """Builds the initial crawl queue for a site."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        *,
        exclude_patterns: Iterable[str] = DEFAULT_EXCLUDE_PATTERNS,
        timeout: float = 30.0,
        use_manifest: bool = True,
        verbose: bool = False,
    ):
        self.client = client
        self.base_url = base_url.rstrip("/")
        parsed = urlparse(self.base_url)
        self.base_origin = f"{parsed.scheme}://{parsed.netloc}"
        self.exclude_patterns = tuple(exclude_patterns)
        self.timeout = timeout
        self.use_manifest = use_manifest
        self.verbose = verbose

    async def discover(self) -> list[str]:
        """The mint.json or docs.json manifest (unless disabled), then sitemap, then homepage navigation links."""
        if self.use_manifest:
            urls = await self.from_manifest()
            if urls:
                console.print(f"[green]Found {len(urls)} pages in navigation manifest[/green]")
                return urls

        urls = await self.from_sitemap()
        if urls:
            console.print(f"[green]Found {len(urls)} pages in sitemap[/green]")
            return urls

        console.print("[yellow]No sitemap found, crawling from homepage...[/yellow]")
        urls = await self.from_homepage()
        console.print(f"[green]Found {len(urls)} links from homepage[/green]")
        return urls

    async def _get(self, url: str) -> httpx.Response | None:
        try:
            response = await self.client.get(url, timeout=self.timeout)
        except httpx.HTTPError as e:
            if self.verbose:
                console.print(f"[dim]Could not fetch {url}: {e}[/dim]")
            return None
        if response.status_code != 200:
            if self.verbose:
                console.print(f"[dim]{url} returned {response.status_code}[/dim]")
            return None
        return response

    async def from_sitemap(self) -> list[str]:
        """Documentation URLs listed in ``{base_url}/sitemap.xml``."""
        response = await self._get(f"{self.base_url}/sitemap.xml")
        if response is None:
            return []

        try:
            locs, is_index = parse_sitemap(response.content)
        except ElementTree.ParseError as e:
            console.print(f"[yellow]Could not parse sitemap: {e}[/yellow]")
            return []

        if is_index:
            # A sitemap index points at child sitemaps
            child_locs: list[str] = []
            for child_url in locs:
                child = await self._get(child_url)
                if child is None:
                    continue
                try:
                    child_urls, _ = parse_sitemap(child.content)
                except ElementTree.ParseError as e:
                    console.print(f"[yellow]Could not parse sitemap {child_url}: {e}[/yellow]")
                    continue
                child_locs.extend(child_urls)
            locs = child_locs

        urls = [normalize_url(url) for url in locs]
        return _dedupe(
            url
            for url in urls
            if is_same_site(url, self.base_origin) and is_documentation_url(url, self.exclude_patterns)
        )

    async def from_homepage(self) -> list[str]:
        """Links found in the homepage's navigation areas."""
        response = await self._get(self.base_url)
        if response is None:
            return []
        return extract_navigation_links(
            response.text, self.base_url, self.base_url, self.exclude_patterns
        )

    async def from_manifest(self) -> list[str]:
        """Pages listed in the site's navigation manifest, if it publishes one."""
        for filename in MANIFEST_FILES:
            response = await self._get(f"{self.base_url}/{filename}")
            if response is None:
                continue
            try:
                data = response.json()
            except ValueError:
                continue
            if not isinstance(data, dict):
                continue

            urls = []
            for page in extract_manifest_pages(data):
                if page.startswith(("http://", "https://")):
                    if not is_same_site(page, self.base_origin):
                        continue
                    full_url = page
                elif page.startswith("/"):
                    full_url = f"{self.base_origin}{page}"
                else:
                    full_url = f"{self.base_url}/{page}"
                full_url = normalize_url(full_url)
                if is_documentation_url(full_url, self.exclude_patterns):
                    urls.append(full_url)

            if urls:
                return _dedupe(urls)

        return []
