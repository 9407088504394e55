"""Conversions within the text family.

Only a handful of pairs transform content. Every other text-to-text
pair keeps the bytes as they are and only changes the reported type.
"""

import json
import logging
import re
from collections.abc import Callable
from typing import Any, Final

import yaml
from markdown_it import MarkdownIt

from fragstore.apps.fragments.exceptions import ConversionFailed

logger = logging.getLogger(__name__)

_TAG_RE: Final = re.compile(r'<[^>]*>')

_markdown = MarkdownIt('commonmark')


class _MalformedSource(ValueError):
    """Source text could not be parsed for the requested conversion."""


def markdown_to_html(text: str) -> str:
    """Render CommonMark to HTML."""
    return _markdown.render(text)


def html_to_markdown(text: str) -> str:
    """Strip every tag and keep the remaining text verbatim.

    This is lossy: headings, links and lists are not reconstructed.
    """
    return _TAG_RE.sub('', text)


def json_to_yaml(text: str) -> str:
    """Re-serialize a JSON document as block-style YAML."""
    return yaml.safe_dump(
        _load_json(text),
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
    )


def yaml_to_json(text: str) -> str:
    """Re-serialize a YAML document as indented JSON."""
    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as error:
        raise _MalformedSource(f'Invalid YAML: {error}') from error
    # YAML timestamps have no JSON form
    try:
        return json.dumps(document, indent=2, ensure_ascii=False, default=str)
    except (TypeError, ValueError) as error:
        # non-string mapping keys, recursive anchors
        raise _MalformedSource(f'YAML has no JSON form: {error}') from error


def csv_to_json(text: str) -> str:
    """Convert CSV to a JSON array of objects.

    The first non-blank line is the header. Cells are split on commas
    with no quoting support and kept as strings; missing cells become
    empty strings. A header-only document gives an empty array.
    """
    lines = [line for line in text.split('\n') if line.strip()]
    if not lines:
        return '[]'
    headers = [header.strip() for header in lines[0].split(',')]
    rows = []
    for line in lines[1:]:
        cells = [cell.strip() for cell in line.split(',')]
        rows.append({
            header: cells[index] if index < len(cells) else ''
            for index, header in enumerate(headers)
        })
    return json.dumps(rows, indent=2, ensure_ascii=False)


def json_to_csv(text: str) -> str:
    """Convert a JSON array of objects to CSV.

    A single object is treated as a one-row array. The header comes
    from the first object's keys; missing or null values are empty.
    """
    document = _load_json(text)
    rows = document if isinstance(document, list) else [document]
    if not rows:
        return ''
    if not all(isinstance(row, dict) for row in rows):
        raise _MalformedSource('JSON must be an object or an array of objects')

    headers = list(rows[0].keys())
    csv_lines = [','.join(headers)]
    for row in rows:
        csv_lines.append(
            ','.join(_format_cell(row.get(header)) for header in headers),
        )
    return '\n'.join(csv_lines)


def _format_cell(value: Any) -> str:
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def _load_json(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as error:
        raise _MalformedSource(f'Invalid JSON: {error}') from error


_CONVERTERS: Final[dict[tuple[str, str], Callable[[str], str]]] = {
    ('text/markdown', 'text/html'): markdown_to_html,
    ('text/html', 'text/markdown'): html_to_markdown,
    ('application/json', 'application/yaml'): json_to_yaml,
    ('application/yaml', 'application/json'): yaml_to_json,
    ('text/csv', 'application/json'): csv_to_json,
    ('application/json', 'text/csv'): json_to_csv,
}


def convert_text(data: bytes, source_type: str, target_type: str) -> bytes:
    """Convert text content between two text-family MIME types.

    Args:
        data: UTF-8 encoded source content.
        source_type: Base MIME type of the source.
        target_type: Base MIME type to convert to.

    Returns:
        Converted UTF-8 bytes, or the original bytes for pairs
        without a transformation.

    Raises:
        ConversionFailed: If the source is not valid UTF-8 or cannot
            be parsed as its declared format.
    """
    converter = _CONVERTERS.get((source_type, target_type))
    if converter is None:
        logger.debug('No transformation for %s -> %s', source_type, target_type)
        return data

    try:
        text = data.decode('utf-8')
        return converter(text).encode('utf-8')
    except UnicodeDecodeError as error:
        logger.warning('Fragment content is not valid UTF-8: %s', source_type)
        raise ConversionFailed(
            source_type,
            target_type,
            'content is not valid UTF-8',
        ) from error
    except _MalformedSource as error:
        logger.warning(
            'Malformed %s content for conversion to %s: %s',
            source_type,
            target_type,
            error,
        )
        raise ConversionFailed(source_type, target_type, str(error)) from error
