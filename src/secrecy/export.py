"""Rendering notes to downloadable documents.

Markdown export writes the note metadata as YAML front matter using
python-frontmatter, so exported notes can be read back with the same
library.
"""

import html
import re
from pathlib import Path

import frontmatter

from .models import UNTITLED_NOTE_TITLE, Note, format_instant

HTML_TEMPLATE = """<!DOCTYPE html>
<html>
  <head>
    <meta charset="utf-8">
    <title>{title}</title>
    <style>
      body {{ font-family: Arial, sans-serif; margin: 40px; line-height: 1.6; }}
      h1 {{ color: #333; border-bottom: 2px solid #eee; padding-bottom: 10px; }}
      .content {{ white-space: pre-wrap; }}
      .meta {{ color: #666; font-size: 12px; margin-top: 20px; }}
    </style>
  </head>
  <body>
    <h1>{title}</h1>
    <div class="content">{content}</div>
    <div class="meta">Created: {created}</div>
  </body>
</html>
"""

WORD_TEMPLATE = """<html xmlns:o="urn:schemas-microsoft-com:office:office" xmlns:w="urn:schemas-microsoft-com:office:word" xmlns="http://www.w3.org/TR/REC-html40">
  <head>
    <meta charset="utf-8">
    <title>{title}</title>
    <!--[if gte mso 9]>
    <xml>
      <w:WordDocument>
        <w:View>Print</w:View>
        <w:Zoom>90</w:Zoom>
        <w:DoNotPromptForConvert/>
        <w:DoNotShowInsertionsAndDeletions/>
      </w:WordDocument>
    </xml>
    <![endif]-->
    <style>
      body {{ font-family: 'Times New Roman', serif; margin: 1in; line-height: 1.5; }}
      h1 {{ font-size: 18pt; font-weight: bold; margin-bottom: 12pt; }}
      p {{ margin-bottom: 12pt; }}
      .meta {{ font-size: 10pt; color: #666; }}
    </style>
  </head>
  <body>
    <h1>{title}</h1>
    <p style="white-space: pre-wrap;">{content}</p>
    <p class="meta">Created: {created}</p>
  </body>
</html>
"""

# Characters that are not allowed in file names on common platforms
_UNSAFE_FILENAME = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


def render_text(note: Note) -> str:
    return f"{note.title}\n\n{note.content}"


def _html_fields(note: Note) -> dict[str, str]:
    return {
        "title": html.escape(note.title),
        "content": html.escape(note.content),
        "created": note.created_at.date().isoformat(),
    }


def render_html(note: Note) -> str:
    """Standalone HTML page, suitable for printing to PDF."""
    return HTML_TEMPLATE.format(**_html_fields(note))


def render_word(note: Note) -> str:
    """Word-compatible HTML, saved with a ``.doc`` extension."""
    return WORD_TEMPLATE.format(**_html_fields(note))


def render_markdown(note: Note) -> str:
    """Markdown body with the note metadata as front matter."""
    metadata = {
        "id": note.id,
        "title": note.title,
        "created": format_instant(note.created_at),
        "updated": format_instant(note.updated_at),
    }
    if note.source_chat_id:
        metadata["source_chat"] = note.source_chat_id
    if note.source_message_id:
        metadata["source_message"] = note.source_message_id

    post = frontmatter.Post(note.content, **metadata)
    return frontmatter.dumps(post) + "\n"


RENDERERS = {
    "txt": render_text,
    "html": render_html,
    "doc": render_word,
    "md": render_markdown,
}

EXPORT_FORMATS = tuple(RENDERERS)


def safe_filename(title: str) -> str:
    """Turn a note title into a usable file name stem."""
    name = _UNSAFE_FILENAME.sub("_", title).strip().strip(".")
    return name or UNTITLED_NOTE_TITLE


def export_note(note: Note, fmt: str, directory: str | Path) -> Path:
    """Write ``note`` to ``directory`` in format ``fmt``.

    Args:
        note: Note to export.
        fmt: One of ``txt``, ``html``, ``doc`` or ``md``.
        directory: Target directory, created if needed.

    Returns:
        Path of the written file.

    Raises:
        ValueError: If the format is unknown.
    """
    fmt = fmt.lower().lstrip(".")
    renderer = RENDERERS.get(fmt)
    if renderer is None:
        raise ValueError(f"Unknown export format '{fmt}', expected one of {', '.join(EXPORT_FORMATS)}")

    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{safe_filename(note.title)}.{fmt}"
    path.write_text(renderer(note), encoding="utf-8")
    return path
