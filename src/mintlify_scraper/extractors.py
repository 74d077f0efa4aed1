"""Pull code examples and API endpoint metadata out of a cleaned content tree."""

import hashlib
import json
import re

from bs4 import Tag

from mintlify_scraper.models import ApiEndpoint, ApiParameter, CodeExample

CODE_SELECTORS = [
    "pre code",
    "pre",
    ".code-block",
    ".codeblock",
    "[class*='highlight']",
    ".highlight code",
    ".hljs",
]

CODE_CLASS_PATTERN = re.compile(r"(?:language|lang|hljs)-([\w+#-]+)")
PRE_CLASS_PATTERN = re.compile(r"(?:language|lang)-([\w+#-]+)")

HTTP_METHOD_PATTERN = re.compile(r"\b(GET|POST|PUT|DELETE|PATCH)\b")
ENDPOINT_URL_PATTERN = re.compile(r"https?://[^\s\"'<>]+")

ENDPOINT_SELECTORS = ["[class*='endpoint']", ".api-endpoint"]

PYTHON_STATEMENT_PATTERN = re.compile(
    r"^\s*(def|class)\s+\w+.*:\s*$"
    r"|^from\s+[\w.]+\s+import\s"
    r"|^import\s+[\w.]+(\s+as\s+\w+)?\s*$"
    r"|if __name__ ==",
    re.MULTILINE,
)


def _class_string(element: Tag | None) -> str:
    if element is None:
        return ""
    classes = element.get("class") or []
    if isinstance(classes, str):
        return classes
    return " ".join(classes)


def infer_language(code: str) -> str:
    """Guess a language from the code text itself."""
    trimmed = code.strip()

    if (trimmed.startswith("{") and trimmed.endswith("}")) or (
        trimmed.startswith("[") and trimmed.endswith("]")
    ):
        try:
            json.loads(trimmed)
            return "json"
        except ValueError:
            pass

    if (
        trimmed.startswith("$")
        or trimmed.startswith("#!")
        or re.search(r"^(npm|yarn|pnpm|pip|curl|wget|git|cd|ls|mkdir)\s", trimmed, re.MULTILINE)
    ):
        return "bash"

    if PYTHON_STATEMENT_PATTERN.search(trimmed):
        return "python"

    if re.search(r"\b(const|let|var|function|async|await|import|export|interface|type)\b", trimmed):
        if re.search(r"\b(interface|type|as|namespace)\b", trimmed):
            return "typescript"
        return "javascript"

    if re.search(r"\b(def|class|import|from|print)\b|if __name__", trimmed):
        return "python"

    if re.search(r"\b(SELECT|INSERT|UPDATE|DELETE|CREATE|ALTER|DROP)\b", trimmed):
        return "sql"

    if re.search(r"</?[a-z][\s\S]*>", trimmed, re.IGNORECASE):
        return "html"

    if re.search(r"[.#]?\w+\s*\{[^}]*\}", trimmed):
        return "css"

    if re.search(r"^\w+:\s*.+$", trimmed, re.MULTILINE) and "{" not in trimmed:
        return "yaml"

    return "text"


def detect_language(code_element: Tag | None, pre_element: Tag | None, code: str) -> str:
    """Resolve a block's language.

    Order: class on the code element, class on the enclosing ``pre``,
    ``data-language``/``data-lang`` attributes, then content inference.
    """
    match = CODE_CLASS_PATTERN.search(_class_string(code_element))
    if match:
        return match.group(1).lower()

    match = PRE_CLASS_PATTERN.search(_class_string(pre_element))
    if match:
        return match.group(1).lower()

    for element in (code_element, pre_element):
        if element is None:
            continue
        for attr in ("data-language", "data-lang"):
            value = element.get(attr)
            if value:
                return str(value).lower()

    return infer_language(code)


def resolve_code_block(element: Tag) -> tuple[Tag | None, Tag | None, Tag]:
    """Return ``(code_element, pre_element, text_source)`` for a matched block."""
    if element.name == "pre":
        code_element = element.find("code")
        return code_element, element, code_element or element

    if element.name == "code":
        parent = element.parent
        pre_element = parent if isinstance(parent, Tag) and parent.name == "pre" else None
        return element, pre_element, element

    # Wrapper div from a highlighter or a Mintlify code group
    pre_element = element.find("pre")
    code_element = element.find("code")
    return code_element, pre_element, code_element or pre_element or element


def _description_for(block: Tag) -> str | None:
    """Text of the paragraph or label directly above a code block."""
    previous = block.find_previous_sibling()
    if previous is None:
        return None
    if previous.name == "p" or previous.name in ("h4", "h5"):
        text = " ".join(previous.get_text().split())
        return text or None
    label_classes = _class_string(previous)
    if "title" in label_classes or "label" in label_classes:
        text = " ".join(previous.get_text().split())
        return text or None
    return None


def _block_key(language: str, code: str) -> str:
    return hashlib.md5(f"{language}:{code[:100]}".encode()).hexdigest()


def extract_code_examples(content: Tag) -> list[CodeExample]:
    """Collect every distinct code block, keeping its text byte for byte."""
    examples: list[CodeExample] = []
    seen: set[str] = set()

    for element in content.select(", ".join(CODE_SELECTORS)):
        # Token spans inside a block also match the highlighter selectors
        enclosing_pre = element.find_parent("pre")
        if enclosing_pre is not None and not (
            element.name == "code" and element.parent is enclosing_pre
        ):
            continue

        code_element, pre_element, source = resolve_code_block(element)
        code = source.get_text()
        if not code.strip():
            continue

        language = detect_language(code_element, pre_element, code)
        key = _block_key(language, code)
        if key in seen:
            continue
        seen.add(key)

        block = pre_element or element
        description = _description_for(block)
        # Highlighters wrap the pre in a div, which then holds the label
        wrapper = block.parent
        if description is None and isinstance(wrapper, Tag) and wrapper is not content:
            if wrapper.name == "div" and len(wrapper.find_all("pre")) == 1:
                description = _description_for(wrapper)

        examples.append(CodeExample(language=language, code=code, description=description))

    return examples


def _find_endpoint_element(content: Tag) -> Tag | None:
    for selector in ENDPOINT_SELECTORS:
        element = content.select_one(selector)
        if element is not None:
            return element
    for code in content.find_all("code"):
        if "https://" in code.get_text():
            return code
    return None


def _parse_parameters(content: Tag) -> tuple[ApiParameter, ...]:
    parameters: list[ApiParameter] = []
    for table in content.find_all("table"):
        for index, row in enumerate(table.find_all("tr")):
            if index == 0:
                continue
            cells = row.find_all("td")
            if len(cells) < 3:
                continue
            parameters.append(
                ApiParameter(
                    name=cells[0].get_text().strip(),
                    type=cells[1].get_text().strip(),
                    required="yes" in cells[2].get_text().lower(),
                    description=cells[3].get_text().strip() if len(cells) > 3 else "",
                )
            )
    return tuple(parameters)


def _find_response_example(content: Tag) -> str | None:
    for pre in content.find_all("pre"):
        surrounding = [pre.get_text()]
        previous = pre.find_previous_sibling()
        if previous is not None:
            surrounding.append(previous.get_text())
        if any("response" in text.lower() for text in surrounding):
            return pre.get_text().strip()
    return None


def extract_api_endpoint(content: Tag) -> ApiEndpoint | None:
    """Best-effort endpoint extraction; ``None`` when the page is not an API reference."""
    element = _find_endpoint_element(content)
    if element is None:
        return None

    text = element.get_text().strip()
    method_match = HTTP_METHOD_PATTERN.search(text)
    url_match = ENDPOINT_URL_PATTERN.search(text)

    first_paragraph = content.find("p")
    return ApiEndpoint(
        method=method_match.group(1) if method_match else "GET",
        path=url_match.group(0) if url_match else text,
        description=first_paragraph.get_text().strip() if first_paragraph else "",
        parameters=_parse_parameters(content),
        response=_find_response_example(content),
    )
