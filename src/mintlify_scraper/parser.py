"""Turn one fetched HTML page into a ``Document``."""

from collections.abc import Callable
from urllib.parse import urlparse

from bs4 import BeautifulSoup, Tag

from mintlify_scraper.cleaner import ContentExtractor, clean_tree, extract_title, find_main_content
from mintlify_scraper.converter import HTMLToMarkdownConverter
from mintlify_scraper.extractors import extract_api_endpoint, extract_code_examples
from mintlify_scraper.models import ApiEndpoint, Document, derive_section

EndpointExtractor = Callable[[Tag], ApiEndpoint | None]


def parse_page(
    url: str,
    html: str,
    *,
    converter: HTMLToMarkdownConverter | None = None,
    content_extractors: list[ContentExtractor] | None = None,
    endpoint_extractor: EndpointExtractor | None = extract_api_endpoint,
) -> Document:
    """Clean, extract and render a page.

    Code examples and endpoint metadata are read from the cleaned tree before
    it is rendered to Markdown. Pass ``endpoint_extractor=None`` to skip the
    endpoint heuristics.
    """
    soup = BeautifulSoup(html, "html.parser")
    title = extract_title(soup)

    clean_tree(soup)
    content = find_main_content(soup, content_extractors)

    if content is None:
        code_examples = []
        api_endpoint = None
        markdown = ""
    else:
        code_examples = extract_code_examples(content)
        api_endpoint = endpoint_extractor(content) if endpoint_extractor else None
        markdown = (converter or HTMLToMarkdownConverter(url)).convert(content, url)

    section, subsection = derive_section(url)
    return Document(
        url=url,
        path=urlparse(url).path or "/",
        title=title,
        content=markdown,
        section=section,
        subsection=subsection,
        code_examples=tuple(code_examples),
        api_endpoint=api_endpoint,
    )
