"""Data structures for scraped documentation pages."""

import posixpath
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urldefrag, urlparse


@dataclass(frozen=True)
class CrawlTarget:
    """A URL waiting to be fetched, plus the metadata it was discovered with."""

    url: str
    depth: int = 0
    priority: int = 0
    selectors_key: str | None = None
    tags: tuple[str, ...] = ()


@dataclass(frozen=True)
class CodeExample:
    """A code block lifted verbatim from a page."""

    language: str
    code: str
    description: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"language": self.language, "code": self.code}
        if self.description:
            data["description"] = self.description
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CodeExample":
        return cls(
            language=data.get("language", "text"),
            code=data.get("code", ""),
            description=data.get("description"),
        )


@dataclass(frozen=True)
class ApiParameter:
    """One row of an endpoint's parameter table."""

    name: str
    type: str
    required: bool
    description: str = ""


@dataclass(frozen=True)
class ApiEndpoint:
    """Endpoint metadata found on an API reference page."""

    method: str
    path: str
    description: str = ""
    parameters: tuple[ApiParameter, ...] = ()
    response: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "method": self.method,
            "endpoint": self.path,
            "description": self.description,
            "parameters": [
                {
                    "name": p.name,
                    "type": p.type,
                    "required": p.required,
                    "description": p.description,
                }
                for p in self.parameters
            ],
        }
        if self.response is not None:
            data["response"] = self.response
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ApiEndpoint":
        return cls(
            method=data.get("method", "GET"),
            path=data.get("endpoint", data.get("path", "")),
            description=data.get("description", ""),
            parameters=tuple(
                ApiParameter(
                    name=p.get("name", ""),
                    type=p.get("type", ""),
                    required=bool(p.get("required", False)),
                    description=p.get("description", ""),
                )
                for p in data.get("parameters", [])
            ),
            response=data.get("response"),
        )


@dataclass(frozen=True)
class Document:
    """A cleaned, markdown-rendered documentation page."""

    url: str
    path: str
    title: str
    content: str
    section: str
    subsection: str | None = None
    code_examples: tuple[CodeExample, ...] = field(default_factory=tuple)
    api_endpoint: ApiEndpoint | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize with the camelCase keys used in the JSON outputs."""
        data: dict[str, Any] = {
            "url": self.url,
            "path": self.path,
            "title": self.title,
            "content": self.content,
            "section": self.section,
            "subsection": self.subsection,
            "codeExamples": [example.to_dict() for example in self.code_examples],
        }
        if self.api_endpoint is not None:
            data["apiEndpoint"] = self.api_endpoint.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Document":
        api = data.get("apiEndpoint")
        return cls(
            url=data["url"],
            path=data.get("path", urlparse(data["url"]).path),
            title=data.get("title", "Untitled"),
            content=data.get("content", ""),
            section=data.get("section", "root"),
            subsection=data.get("subsection"),
            code_examples=tuple(
                CodeExample.from_dict(example) for example in data.get("codeExamples", [])
            ),
            api_endpoint=ApiEndpoint.from_dict(api) if api else None,
        )


def normalize_url(url: str) -> str:
    """Drop the fragment, resolve dot segments and strip any trailing slash."""
    url, _ = urldefrag(url)
    parsed = urlparse(url)
    path = posixpath.normpath(parsed.path).lstrip("/") if parsed.path else ""
    path = "" if path in ("", ".") else "/" + path
    normalized = f"{parsed.scheme}://{parsed.netloc}{path}"
    if parsed.query:
        normalized += f"?{parsed.query}"
    return normalized


def derive_section(url: str) -> tuple[str, str | None]:
    """Return ``(section, subsection)`` from the first two path segments of a URL."""
    path = posixpath.normpath(urlparse(url).path or "/")
    parts = [part for part in path.split("/") if part not in ("", ".", "..")]
    section = parts[0] if parts else "root"
    subsection = parts[1] if len(parts) > 1 else None
    return section, subsection
