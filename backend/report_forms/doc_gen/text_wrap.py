"""
Text wrap estimator - line counts and line breaking for fixed-width cells

Responsibilities:
1. Estimate how many visual lines a remark occupies in a spreadsheet cell
2. Break free text for PDF multi-line fields (character budget or font width)

Dependencies:
- reportlab.pdfbase.pdfmetrics: glyph widths of the standard fonts

The character-based functions are heuristics sized for one font and one cell
width. They do not measure glyphs and are only guaranteed to be monotonic:
more text never gives fewer lines, and never more than the cap.
"""

from __future__ import annotations

from reportlab.pdfbase.pdfmetrics import stringWidth


def estimate_wrapped_line_count(text: str, approx_chars_per_line: int = 20, max_lines: int = 8) -> int:
    """Visual line count of *text* in a cell of about *approx_chars_per_line* characters"""
    budget = max(1, approx_chars_per_line)
    normalized = (text or "").replace("\r\n", "\n").strip()
    if not normalized:
        return 1

    total = 0
    for paragraph in normalized.split("\n"):
        words = paragraph.split()
        if not words:
            total += 1
            continue

        lines = 1
        current = 0
        for word in words:
            length = len(word)
            if current and current + 1 + length <= budget:
                current += 1 + length
                continue
            if current:
                lines += 1
            # tokens longer than a line wrap onto extra lines
            lines += (length - 1) // budget
            current = (length - 1) % budget + 1
        total += lines

    return max(1, min(max_lines, total))


def row_height_for(line_count: int, base_height: float = 18.0, extra_line_height: float = 15.0) -> float:
    """Row height grown by one extra line height per additional line"""
    return base_height + (max(1, line_count) - 1) * extra_line_height


def wrap_by_chars(text: str, max_chars: int | None = 60, max_lines: int = 6) -> list[str]:
    """
    Greedy word wrap on a character budget

    Words are never split; an over-long word gets a line of its own.
    Line breaks in the input are treated as spaces.
    """
    raw = (text or "").replace("\r", "")
    if not raw.strip():
        return []
    if max_chars is None:
        return [" ".join(raw.split())][:max_lines]

    lines: list[str] = []
    current = ""
    for word in raw.split():
        candidate = f"{current} {word}" if current else word
        if len(candidate) > max_chars:
            if current:
                lines.append(current)
            current = word
        else:
            current = candidate
        if len(lines) >= max_lines:
            break
    if len(lines) < max_lines and current:
        lines.append(current)
    return lines[:max_lines]


def wrap_by_width(text: str, max_width: float, font_name: str = "Helvetica", size: float = 7.0) -> list[str]:
    """
    Word wrap on the rendered width of the text

    Paragraphs are kept; an empty paragraph yields an empty line.
    """
    raw = (text or "").strip()
    if not raw:
        return []

    rows: list[str] = []
    for paragraph in raw.replace("\r\n", "\n").split("\n"):
        words = paragraph.split()
        if not words:
            rows.append("")
            continue
        line = ""
        for word in words:
            candidate = f"{line} {word}" if line else word
            if stringWidth(candidate, font_name, size) <= max_width:
                line = candidate
                continue
            if line:
                rows.append(line)
            line = word
        if line:
            rows.append(line)
    return rows


def fit_font_size(
    text: str,
    max_width: float,
    font_name: str = "Helvetica",
    start_size: float = 10.0,
    min_size: float = 7.0,
    step: float = 0.5,
) -> float:
    """Largest size (down to *min_size*) at which *text* fits *max_width*"""
    size = start_size
    while size > min_size and stringWidth(text, font_name, size) > max_width:
        size -= step
    return size
