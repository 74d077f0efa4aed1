"""Tests for mintlify_scraper.converter module."""

from bs4 import BeautifulSoup

from mintlify_scraper.converter import HTMLToMarkdownConverter, fence_code, normalize_markdown

PAGE_URL = "https://docs.example.com/guides/intro"


def convert(html: str) -> str:
    root = BeautifulSoup(f"<div>{html}</div>", "html.parser").find("div")
    return HTMLToMarkdownConverter("https://docs.example.com").convert(root, PAGE_URL)


class TestNormalizeMarkdown:
    def test_collapses_prose_whitespace(self):
        assert normalize_markdown("a   b\n\n\n\nc  ") == "a b\n\nc"

    def test_fenced_code_untouched(self):
        markdown = "text   with  spaces\n\n\n\n```python\n    x  =  1\n\n\n\ny = 2\n```\n"
        assert normalize_markdown(markdown) == (
            "text with spaces\n\n```python\n    x  =  1\n\n\n\ny = 2\n```"
        )


class TestFenceCode:
    def test_adds_trailing_newline(self):
        assert fence_code("x = 1", "python") == "```python\nx = 1\n```"

    def test_longer_fence_for_nested_backticks(self):
        assert fence_code("```\ninner\n```\n", "markdown") == "````markdown\n```\ninner\n```\n````"


class TestHTMLToMarkdownConverter:
    def test_none(self):
        assert HTMLToMarkdownConverter().convert(None) == ""

    def test_headings_and_paragraphs(self):
        markdown = convert("<h2>Install</h2><p>Run the <strong>installer</strong> now.</p>")
        assert markdown == "## Install\n\nRun the **installer** now."

    def test_relative_links_become_absolute(self):
        markdown = convert('<p>See <a href="/api/users">Users</a> and <a href="setup">Setup</a>.</p>')
        assert "[Users](https://docs.example.com/api/users)" in markdown
        assert "[Setup](https://docs.example.com/guides/setup)" in markdown

    def test_inline_code_and_emphasis(self):
        assert convert("<p>Use <code>init()</code> <em>first</em>.</p>") == "Use `init()` *first*."

    def test_code_block_keeps_indentation(self):
        markdown = convert('<pre><code class="language-python">def f():\n    pass\n</code></pre>')
        assert markdown == "```python\ndef f():\n    pass\n```"

    def test_lists(self):
        markdown = convert("<ul><li>One</li><li>Two <code>x</code></li></ul><ol><li>First</li></ol>")
        assert "- One" in markdown
        assert "- Two `x`" in markdown
        assert "1. First" in markdown

    def test_nested_list_follows_item(self):
        markdown = convert("<ul><li>Parent<ul><li>Child</li></ul></li></ul>")
        assert markdown.index("- Parent") < markdown.index("- Child")

    def test_table_escapes_pipes(self):
        markdown = convert("<table><tr><th>A</th><th>B</th></tr><tr><td>a|b</td><td>c</td></tr></table>")
        assert "| A | B |" in markdown
        assert "| --- | --- |" in markdown
        assert "| a\\|b | c |" in markdown

    def test_blockquote(self):
        assert convert("<blockquote><p>Note this.</p></blockquote>") == "> Note this."

    def test_images(self):
        markdown = convert('<p><img src="/img/logo.png" alt="Logo"></p>')
        assert markdown == "![Logo](https://docs.example.com/img/logo.png)"

    def test_skips_buttons_and_svg(self):
        markdown = convert("<p>Copy</p><button>Copy</button><svg><text>icon</text></svg>")
        assert markdown == "Copy"

    def test_markup_characters_escaped(self):
        markdown = convert('<p>Use <code>&lt;Card title="x"&gt;</code> &amp; friends &lt;3</p>')
        assert markdown == 'Use `&lt;Card title="x"&gt;` &amp; friends &lt;3'

    def test_markup_in_headings_escaped(self):
        assert convert("<h2>The &lt;Tabs&gt; component</h2>") == "## The &lt;Tabs&gt; component"

    def test_code_blocks_not_escaped(self):
        markdown = convert("<pre><code>&lt;div&gt;a &amp;&amp; b&lt;/div&gt;\n</code></pre>")
        assert "<div>a && b</div>\n" in markdown

    def test_bare_inline_text_becomes_paragraph(self):
        assert convert("Loose <b>text</b>") == "Loose **text**"

    def test_same_input_same_output(self):
        html = "<h1>T</h1><p>a</p><pre><code>x</code></pre>"
        assert convert(html) == convert(html)
