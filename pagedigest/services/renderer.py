"""Standalone HTML page for a stored summary.

Only the Markdown subset the summarization prompts ask for is understood:
headings, bullet lists, fenced code, blockquotes, emphasis, inline code and
http(s) links.  Everything is escaped before formatting is applied.
"""

import re
from datetime import date
from html import escape
from typing import List

from pagedigest.models.content import ContentKind

_KIND_LABELS = {"web": "Article", "video": "Video", "site": "Site"}

_BOLD_RE = re.compile(r"\*\*(.+?)\*\*")
_ITALIC_RE = re.compile(r"(?<!\*)\*(?!\*)(.+?)(?<!\*)\*(?!\*)")
_CODE_RE = re.compile(r"`([^`]+)`")
_LINK_RE = re.compile(r"\[([^\]]+)\]\(([^)\s]+)\)")
_BULLET_RE = re.compile(r"^\s*[-*] ")
_HEADING_RE = re.compile(r"^(#{1,4}) (.+)$")

_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>{title} - pagedigest</title>
<style>
  body {{ background: #1a1b26; color: #c0c8d8; font-family: "JetBrains Mono", "Fira Code", monospace;
         font-size: 17px; line-height: 1.7; max-width: 52rem; margin: 0 auto; padding: 3rem 2rem; }}
  h1 {{ color: #e0e4ee; }} h2 {{ color: #9ece6a; }} h3, h4 {{ color: #7aa2f7; }}
  a {{ color: #7aa2f7; }} em {{ color: #bb9af7; }}
  code, pre {{ background: #24283b; border-radius: 4px; }} pre {{ padding: 1rem; overflow-x: auto; }}
  blockquote {{ color: #73daca; border-left: 3px solid #292e42; padding-left: 1rem; }}
  .meta {{ color: #565f89; margin-bottom: 2rem; }}
  .badge {{ border: 1px solid currentColor; border-radius: 4px; padding: 0 .4rem; }}
</style>
</head>
<body>
<h1>{title}</h1>
<div class="meta"><span class="badge">{kind}</span> {date} &middot; {words} words &middot; <a href="{url}">source</a></div>
{body}
</body>
</html>
"""


def _link(match: re.Match) -> str:
    text, url = match.group(1), match.group(2)
    if re.match(r"https?://", url, re.IGNORECASE):
        return f'<a href="{url}" target="_blank">{text}</a>'
    return f"{text} ({url})"


def _inline(text: str) -> str:
    text = escape(text)
    text = _CODE_RE.sub(r"<code>\1</code>", text)
    text = _BOLD_RE.sub(r"<strong>\1</strong>", text)
    text = _ITALIC_RE.sub(r"<em>\1</em>", text)
    text = _LINK_RE.sub(_link, text)
    return text.replace("\n", "<br>")


def _block(block: str) -> str:
    if block.startswith("```"):
        code = re.sub(r"^```\w*\n?", "", block)
        code = re.sub(r"\n?```$", "", code)
        return f"<pre><code>{escape(code)}</code></pre>"

    heading = _HEADING_RE.match(block)
    if heading and "\n" not in block:
        level = len(heading.group(1))
        return f"<h{level}>{_inline(heading.group(2))}</h{level}>"

    lines = block.split("\n")
    if all(_BULLET_RE.match(line) for line in lines):
        items = "".join(f"<li>{_inline(_BULLET_RE.sub('', line))}</li>" for line in lines)
        return f"<ul>{items}</ul>"

    if all(line.startswith(">") for line in lines):
        quoted = "\n".join(re.sub(r"^>\s?", "", line) for line in lines)
        return f"<blockquote>{_inline(quoted)}</blockquote>"

    return f"<p>{_inline(block)}</p>"


def _split_blocks(markdown: str) -> List[str]:
    """Split on blank lines, and also before a heading glued to the next block."""
    blocks: List[str] = []
    for raw in re.split(r"\n\s*\n", markdown.strip()):
        lines = raw.strip("\n").split("\n")
        if len(lines) > 1 and _HEADING_RE.match(lines[0]) and not raw.startswith("```"):
            blocks.append(lines[0])
            blocks.append("\n".join(lines[1:]))
        elif raw.strip():
            blocks.append(raw.strip("\n"))
    return blocks


def markdown_to_html(markdown: str) -> str:
    return "\n".join(_block(block) for block in _split_blocks(markdown))


def render_page(
    *,
    title: str,
    url: str,
    kind: ContentKind,
    summary: str,
    words: int,
    created: date,
) -> str:
    source = escape(url, quote=True) if re.match(r"https?://", url) else "#"
    return _PAGE.format(
        title=escape(title),
        kind=_KIND_LABELS[kind],
        date=created.isoformat(),
        words=words,
        url=source,
        body=markdown_to_html(summary),
    )
