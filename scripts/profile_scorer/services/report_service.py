#------------------------------------------------------------
#                      report_service.py
#            Provides helpers to read, write, and
#           replace generated report sections.

import os
import re
import sys

SECTION_PATTERN_TEMPLATE = r"({start})\n.*?({end})"
MISSING_MARKER_WARNING_TEMPLATE = "WARNING: marker pair not found: {marker!r}; appending section"
DUPLICATE_MARKER_WARNING_TEMPLATE = "WARNING: duplicate marker pairs found for {marker!r}; collapsing to first occurrence"

# This function does replace a marker-delimited report block.
# Missing markers are appended so the first run seeds the file.
def replace_section(content: str, start_marker: str, end_marker: str, new_body: str) -> str:
    pattern = re.compile(
        SECTION_PATTERN_TEMPLATE.format(
            start=re.escape(start_marker),
            end=re.escape(end_marker),
        ),
        re.DOTALL,
    )

    matches = list(pattern.finditer(content))
    if len(matches) > 1:
        print(DUPLICATE_MARKER_WARNING_TEMPLATE.format(marker=start_marker), file=sys.stderr)
        for duplicate in reversed(matches[1:]):
            content = content[:duplicate.start()] + content[duplicate.end():]

    block = f"{start_marker}\n{new_body}\n{end_marker}"
    result, count = pattern.subn(lambda _match: block, content, count=1)
    if count == 0:
        print(MISSING_MARKER_WARNING_TEMPLATE.format(marker=start_marker), file=sys.stderr)
        separator = "" if not content or content.endswith("\n\n") else ("\n" if content.endswith("\n") else "\n\n")
        result = f"{content}{separator}{block}\n"
    return result

# This function does load report text from the given path.
# A missing file reads as an empty report.
def load_report(path: str) -> str:
    if not os.path.exists(path):
        return ""
    with open(path, "r", encoding="utf-8") as file_handle:
        return file_handle.read()

# This function does save report text to the given path.
# It creates the parent directory when needed.
def save_report(path: str, content: str) -> None:
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "w", encoding="utf-8") as file_handle:
        file_handle.write(content)
