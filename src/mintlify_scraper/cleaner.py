"""Strip site chrome from a parsed page and locate its main content."""

from collections.abc import Callable

from bs4 import BeautifulSoup, Tag

# Removal passes run in this order. Scripts must be gone before the later
# heuristics look at the tree, or inline script text would read as code.
SCRIPT_SELECTORS = ["script", "style", "noscript"]

NAVIGATION_SELECTORS = [
    "nav",
    ".sidebar",
    ".toc",
    "[class*='navigation']",
    "[class*='table-of-contents']",
]

EMBED_SELECTORS = ["iframe", "embed", "object"]

CHROME_SELECTORS = [
    "[class*='navbar']",
    "[class*='footer']",
    "footer",
    "[id*='search']",
    "[hidden]",
    "[style*='display: none']",
    "[style*='visibility: hidden']",
    "meta",
    "link",
    "[class*='banner']",
    "[class*='advertisement']",
    "[class*='promo']",
    "[class*='breadcrumb']",
    "[class*='pagination']",
    "[class*='share']",
    "[class*='social']",
    "[class*='comment']",
    "[class*='feedback']",
    "[class*='rating']",
]

REMOVAL_PASSES = [SCRIPT_SELECTORS, NAVIGATION_SELECTORS, EMBED_SELECTORS, CHROME_SELECTORS]

ContentExtractor = Callable[[BeautifulSoup | Tag], Tag | None]


def _inside_code(element: Tag) -> bool:
    """Whether the element is (or sits inside) a code block."""
    if element.name in ("pre", "code"):
        return True
    return element.find_parent(["pre", "code"]) is not None


def clean_tree(root: BeautifulSoup | Tag) -> BeautifulSoup | Tag:
    """Remove non-content markup in place and return the same tree."""
    for selectors in REMOVAL_PASSES:
        for element in root.select(", ".join(selectors)):
            if element.decomposed:
                continue
            # Highlighter token classes such as "hljs-comment" live inside code
            if selectors is CHROME_SELECTORS and _inside_code(element):
                continue
            element.decompose()
    return root


def select_by(selector: str) -> ContentExtractor:
    """Build an extractor returning the first non-empty match for a CSS selector."""

    def extract(root: BeautifulSoup | Tag) -> Tag | None:
        for element in root.select(selector):
            if element.get_text(strip=True):
                return element
        return None

    extract.__name__ = f"select_by({selector!r})"
    return extract


CONTENT_EXTRACTORS: list[ContentExtractor] = [
    select_by("main"),
    select_by("[class*='content']"),
    select_by("article"),
    select_by(".markdown"),
]


def find_main_content(
    root: BeautifulSoup | Tag,
    extractors: list[ContentExtractor] | None = None,
) -> Tag | None:
    """Try each extractor in order and return the first hit.

    Falls back to ``<body>`` when no extractor matches.
    """
    for extract in extractors if extractors is not None else CONTENT_EXTRACTORS:
        element = extract(root)
        if element is not None:
            return element
    body = root.find("body")
    return body if isinstance(body, Tag) else None


def extract_title(soup: BeautifulSoup) -> str:
    """Title from the first ``<h1>``, then ``<title>``, else ``Untitled``."""
    h1 = soup.find("h1")
    if h1 and h1.get_text(strip=True):
        return " ".join(h1.get_text().split())
    if soup.title and soup.title.get_text(strip=True):
        return soup.title.get_text().strip()
    return "Untitled"
