"""Convert a cleaned content tree to Markdown."""

import html
import re
from urllib.parse import urljoin

from bs4 import Comment, Doctype, NavigableString, ProcessingInstruction, Tag

from mintlify_scraper.extractors import detect_language, resolve_code_block

SKIP_TAGS = {"script", "style", "noscript", "svg", "button", "nav", "aside", "footer", "template"}

INLINE_TAGS = {
    "a",
    "abbr",
    "b",
    "br",
    "code",
    "del",
    "em",
    "i",
    "img",
    "kbd",
    "mark",
    "s",
    "small",
    "span",
    "strong",
    "sub",
    "sup",
    "u",
}

BLOCK_TAGS = {
    "blockquote",
    "div",
    "dl",
    "h1",
    "h2",
    "h3",
    "h4",
    "h5",
    "h6",
    "hr",
    "ol",
    "p",
    "pre",
    "table",
    "ul",
}

FENCE_PATTERN = re.compile(r"^(`{3,})[^\n]*\n.*?^\1[ \t]*$", re.DOTALL | re.MULTILINE)

_IGNORED_STRINGS = (Comment, Doctype, ProcessingInstruction)


def escape_text(text: str) -> str:
    """Escape ``&``, ``<`` and ``>`` so rendered prose never reads back as markup."""
    return html.escape(text, quote=False)


def _normalize_prose(text: str) -> str:
    text = re.sub(r" {2,}", " ", text)
    text = "\n".join(line.strip() for line in text.split("\n"))
    return re.sub(r"\n{3,}", "\n\n", text)


def normalize_markdown(markdown: str) -> str:
    """Tidy whitespace outside fenced code blocks; fence contents are left untouched."""
    pieces: list[str] = []
    position = 0
    for match in FENCE_PATTERN.finditer(markdown):
        pieces.append(_normalize_prose(markdown[position : match.start()]))
        pieces.append(match.group(0))
        position = match.end()
    pieces.append(_normalize_prose(markdown[position:]))
    return "".join(pieces).strip()


def fence_code(code: str, language: str) -> str:
    """Wrap code in a fence long enough not to collide with its contents."""
    fence = "```"
    while fence in code:
        fence += "`"
    body = code if code.endswith("\n") else code + "\n"
    return f"{fence}{language}\n{body}{fence}"


def _has_block_descendant(element: Tag) -> bool:
    return element.find(list(BLOCK_TAGS)) is not None


class HTMLToMarkdownConverter:
    """Convert HTML content to Markdown format."""

    def __init__(self, base_url: str = ""):
        self.base_url = base_url
        self.current_page_url = base_url

    def convert(self, element: Tag | None, page_url: str = "") -> str:
        """Convert BeautifulSoup element to Markdown."""
        if element is None:
            return ""

        self.current_page_url = page_url or self.base_url

        lines: list[str] = []
        self._process_element(element, lines)

        return normalize_markdown("\n".join(lines))

    def _absolute(self, url: str) -> str:
        if not url or url.startswith(("http://", "https://", "#", "mailto:", "data:")):
            return url
        return urljoin(self.current_page_url, url)

    def _process_children(self, element: Tag, lines: list[str]) -> None:
        """Process children, gathering runs of inline content into paragraphs."""
        buffer: list[str] = []

        def flush() -> None:
            text = "".join(buffer).strip()
            buffer.clear()
            if text:
                lines.extend(["", text, ""])

        for child in element.children:
            if isinstance(child, NavigableString):
                if not isinstance(child, _IGNORED_STRINGS):
                    buffer.append(self._inline(child))
                continue
            if not isinstance(child, Tag):
                continue
            name = (child.name or "").lower()
            if name in INLINE_TAGS and not _has_block_descendant(child):
                buffer.append(self._inline(child))
                continue
            flush()
            self._process_element(child, lines)

        flush()

    def _process_element(self, element: Tag, lines: list[str]) -> None:
        """Process an HTML element and convert to Markdown."""
        tag_name = element.name.lower() if element.name else ""

        if tag_name in SKIP_TAGS:
            return

        if tag_name in ("h1", "h2", "h3", "h4", "h5", "h6"):
            text = escape_text(" ".join(element.get_text().split()))
            if text:
                lines.extend(["", f"{'#' * int(tag_name[1])} {text}", ""])

        elif tag_name == "p":
            text = self._inline_children(element).strip()
            if text:
                lines.extend(["", text, ""])

        elif tag_name == "pre":
            code_element, pre_element, source = resolve_code_block(element)
            code = source.get_text()
            if code.strip():
                language = detect_language(code_element, pre_element, code)
                lines.extend(["", fence_code(code, language), ""])

        elif tag_name in ("ul", "ol"):
            self._process_list(element, lines, ordered=tag_name == "ol")

        elif tag_name == "blockquote":
            inner: list[str] = []
            self._process_children(element, inner)
            text = normalize_markdown("\n".join(inner))
            if text:
                quoted = "\n".join(f"> {line}" if line else ">" for line in text.split("\n"))
                lines.extend(["", quoted, ""])

        elif tag_name == "table":
            self._process_table(element, lines)

        elif tag_name == "dl":
            lines.append("")
            for child in element.find_all(["dt", "dd"], recursive=False):
                text = self._inline_children(child).strip()
                if not text:
                    continue
                if child.name == "dt":
                    lines.append(f"**{text}**")
                else:
                    lines.extend([f": {text}", ""])
            lines.append("")

        elif tag_name == "hr":
            lines.extend(["", "---", ""])

        elif tag_name == "br":
            lines.append("")

        elif tag_name in INLINE_TAGS and not _has_block_descendant(element):
            text = self._inline(element).strip()
            if text:
                lines.extend(["", text, ""])

        else:
            # div, section, article, main and anything unrecognised
            self._process_children(element, lines)

    def _inline_children(self, element: Tag) -> str:
        return "".join(self._inline(child) for child in element.children)

    def _inline(self, node) -> str:
        """Convert inline element to Markdown string."""
        if isinstance(node, NavigableString):
            if isinstance(node, _IGNORED_STRINGS):
                return ""
            return escape_text(re.sub(r"\s+", " ", str(node)))

        if not isinstance(node, Tag):
            return ""

        tag_name = node.name.lower() if node.name else ""

        if tag_name in SKIP_TAGS:
            return ""
        if tag_name == "code":
            text = escape_text(node.get_text().strip())
            return f"`{text}`" if text else ""
        if tag_name in ("strong", "b"):
            text = self._inline_children(node).strip()
            return f"**{text}**" if text else ""
        if tag_name in ("em", "i"):
            text = self._inline_children(node).strip()
            return f"*{text}*" if text else ""
        if tag_name == "a":
            img = node.find("img")
            text = self._inline_children(node).strip()
            if img is not None and not text:
                return self._image(img)
            href = node.get("href", "")
            if href and text:
                return f"[{text}]({self._absolute(href)})"
            return text
        if tag_name == "br":
            return "\n"
        if tag_name == "img":
            return self._image(node)
        return self._inline_children(node)

    def _image(self, element: Tag) -> str:
        src = element.get("src", "")
        if not src or src.startswith("data:"):
            return ""
        alt = escape_text(element.get("alt", ""))
        return f"![{alt}]({self._absolute(src)})"

    def _process_list(self, element: Tag, lines: list[str], ordered: bool) -> None:
        lines.append("")
        for index, li in enumerate(element.find_all("li", recursive=False), 1):
            inline_parts: list[str] = []
            trailing: list[str] = []
            for child in li.children:
                if isinstance(child, Tag) and (
                    child.name in ("ul", "ol", "pre", "table", "blockquote")
                    or (child.name not in INLINE_TAGS and child.name != "p" and _has_block_descendant(child))
                ):
                    self._process_element(child, trailing)
                elif isinstance(child, Tag) and child.name == "p":
                    inline_parts.append(" " + self._inline_children(child) + " ")
                else:
                    inline_parts.append(self._inline(child))
            text = " ".join("".join(inline_parts).split())
            if text:
                marker = f"{index}." if ordered else "-"
                lines.append(f"{marker} {text}")
            lines.extend(line for line in trailing if line)
        lines.append("")

    def _process_table(self, table: Tag, lines: list[str]) -> None:
        """Convert HTML table to Markdown table."""
        rows = table.find_all("tr")
        if not rows:
            return

        def cell_text(cell: Tag) -> str:
            return " ".join(self._inline_children(cell).split()).replace("|", "\\|")

        lines.append("")

        # Process header row
        headers = [cell_text(cell) for cell in rows[0].find_all(["th", "td"])]
        if headers:
            lines.append("| " + " | ".join(headers) + " |")
            lines.append("| " + " | ".join(["---"] * len(headers)) + " |")

        # Process data rows
        for row in rows[1:]:
            cells = [cell_text(cell) for cell in row.find_all(["td", "th"])]
            if cells:
                lines.append("| " + " | ".join(cells) + " |")

        lines.append("")
