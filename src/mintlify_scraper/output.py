"""Write scraped documents to disk: per-page files, index, combined file, JSON."""

import json
import os
import re
import zipfile
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any
from urllib.parse import urlparse

from mintlify_scraper.config import PROGRESS_FILENAME
from mintlify_scraper.converter import fence_code
from mintlify_scraper.models import Document


def slugify(text: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")
    return slug or "untitled"


def section_dirname(section: str) -> str:
    """Directory name for a section; never a dot segment or a nested path."""
    name = re.sub(r"[\\/]+", "-", section).strip()
    if not name.strip("."):
        return "root"
    return name


def format_section_name(section: str) -> str:
    """``getting-started`` -> ``Getting Started``."""
    return " ".join(word[:1].upper() + word[1:] for word in section.split("-"))


def sort_documents(documents: Iterable[Document]) -> list[Document]:
    """Deterministic order: section, then title, then URL."""
    return sorted(documents, key=lambda d: (d.section, d.title.lower(), d.title, d.url))


def assign_filenames(documents: Iterable[Document]) -> dict[str, str]:
    """Map each document URL to a unique ``<slug>.md`` within its section."""
    taken: dict[str, set[str]] = {}
    filenames: dict[str, str] = {}
    for document in sort_documents(documents):
        used = taken.setdefault(section_dirname(document.section), set())
        base = slugify(document.title)
        candidate = base
        counter = 2
        while candidate in used:
            candidate = f"{base}-{counter}"
            counter += 1
        used.add(candidate)
        filenames[document.url] = f"{candidate}.md"
    return filenames


def group_by_section(documents: Iterable[Document]) -> dict[str, list[Document]]:
    sections: dict[str, list[Document]] = {}
    for document in sort_documents(documents):
        sections.setdefault(document.section, []).append(document)
    return sections


def render_page(document: Document) -> str:
    """Markdown for a single page file."""
    parts = [f"# {document.title}", f"**URL:** {document.url}"]

    endpoint = document.api_endpoint
    if endpoint is not None:
        parts.append("## API Endpoint")
        parts.append(f"**Method:** `{endpoint.method}`\n**Endpoint:** `{endpoint.path}`")
        if endpoint.description:
            parts.append(endpoint.description)
        if endpoint.parameters:
            rows = [
                "### Parameters",
                "",
                "| Parameter | Type | Required | Description |",
                "| --- | --- | --- | --- |",
            ]
            for param in endpoint.parameters:
                required = "Yes" if param.required else "No"
                rows.append(f"| {param.name} | {param.type} | {required} | {param.description} |")
            parts.append("\n".join(rows))
        if endpoint.response:
            parts.append("### Response\n\n" + fence_code(endpoint.response, "json"))

    parts.append(f"## Documentation\n\n{document.content}")

    if document.code_examples:
        parts.append("## Code Examples")
        for example in document.code_examples:
            if example.description:
                parts.append(example.description)
            parts.append(fence_code(example.code, example.language))

    return "\n\n".join(parts) + "\n"


def _header(title: str, base_url: str, scraped_at: str, total: int) -> str:
    return (
        f"# {title}\n\n"
        f"> Scraped from: {base_url}\n"
        f"> Date: {scraped_at}\n"
        f"> Total pages: {total}\n\n"
    )


def render_index(documents: list[Document], base_url: str, scraped_at: str) -> str:
    """INDEX.md: every page linked, grouped by section."""
    filenames = assign_filenames(documents)
    host = urlparse(base_url).hostname or base_url
    lines = [_header(f"{host} Documentation", base_url, scraped_at, len(documents))]
    lines.append("## Table of Contents\n\n")
    for section, pages in group_by_section(documents).items():
        lines.append(f"### {format_section_name(section)}\n\n")
        for page in pages:
            lines.append(f"- [{page.title}](./{section_dirname(section)}/{filenames[page.url]})\n")
        lines.append("\n")
    return "".join(lines)


def render_complete(documents: list[Document], base_url: str, scraped_at: str) -> str:
    """COMPLETE.md: all documents concatenated, sorted by section and title."""
    host = urlparse(base_url).hostname or base_url
    lines = [_header(f"Complete {host} Documentation", base_url, scraped_at, len(documents))]
    lines.append("---\n\n")

    current_section = None
    for page in sort_documents(documents):
        if page.section != current_section:
            current_section = page.section
            lines.append(f"\n\n# {format_section_name(current_section)}\n\n---\n\n")
        lines.append(f"## {page.title}\n\n**URL:** {page.url}\n\n{page.content}\n\n")
        for example in page.code_examples:
            lines.append(fence_code(example.code, example.language) + "\n\n")
        lines.append("---\n\n")

    return "".join(lines)


def build_metadata(documents: list[Document], base_url: str, scraped_at: str) -> dict[str, Any]:
    """The metadata.json payload read by every downstream generator."""
    ordered = sort_documents(documents)
    sections: list[str] = []
    for document in ordered:
        if document.section not in sections:
            sections.append(document.section)
    return {
        "baseUrl": base_url,
        "scrapedAt": scraped_at,
        "totalPages": len(ordered),
        "sections": sections,
        "pages": [
            {
                "url": d.url,
                "path": d.path,
                "title": d.title,
                "section": d.section,
                "subsection": d.subsection,
                "hasApiEndpoint": d.api_endpoint is not None,
                "codeExamplesCount": len(d.code_examples),
            }
            for d in ordered
        ],
    }


def _write(path: str, text: str) -> None:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)


def write_outputs(
    documents: list[Document],
    base_url: str,
    output_dir: str,
    scraped_at: str | None = None,
) -> list[str]:
    """Write every output file and return their paths."""
    scraped_at = scraped_at or datetime.now(timezone.utc).isoformat()
    os.makedirs(output_dir, exist_ok=True)
    written = []

    filenames = assign_filenames(documents)
    for section, pages in group_by_section(documents).items():
        for page in pages:
            path = os.path.join(output_dir, section_dirname(section), filenames[page.url])
            _write(path, render_page(page))
            written.append(path)

    index_path = os.path.join(output_dir, "INDEX.md")
    _write(index_path, render_index(documents, base_url, scraped_at))

    complete_path = os.path.join(output_dir, "COMPLETE.md")
    _write(complete_path, render_complete(documents, base_url, scraped_at))

    metadata_path = os.path.join(output_dir, "metadata.json")
    _write(metadata_path, json.dumps(build_metadata(documents, base_url, scraped_at), indent=2))

    documents_path = os.path.join(output_dir, "documents.json")
    payload = [d.to_dict() for d in sort_documents(documents)]
    _write(documents_path, json.dumps(payload, indent=2))

    written.extend([index_path, complete_path, metadata_path, documents_path])
    return written


def create_zip_archive(output_dir: str) -> str:
    """Zip the output directory next to itself, leaving out the checkpoint."""
    output_dir = os.path.abspath(output_dir)
    parent = os.path.dirname(output_dir)
    name = os.path.basename(output_dir)
    zip_path = os.path.join(parent, f"{name}.zip")

    with zipfile.ZipFile(zip_path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for root, _, files in os.walk(output_dir):
            for filename in sorted(files):
                if filename == PROGRESS_FILENAME:
                    continue
                full_path = os.path.join(root, filename)
                archive.write(full_path, os.path.relpath(full_path, parent))

    return zip_path
