"""Extract page and table references from generated answers (for clickable links)"""

import re
from dataclasses import dataclass
from typing import List

PAGE_PATTERN = re.compile(r"(?:page|pg\.?)\s*(\d+)", re.IGNORECASE)
TABLE_PATTERN = re.compile(r"table\s+[\d.]+.*?(?:page|pg\.?)\s*(\d+)", re.IGNORECASE)


@dataclass(frozen=True)
class PageReference:
    page: int
    type: str  # "page" | "table"


def extract_page_references(text: str) -> List[PageReference]:
    """
    Find page numbers cited in an answer.

    "Table X ... page N" mentions are scanned first so those pages are
    tagged as tables, then plain page mentions. Each page is reported once.

    Examples:
        >>> extract_page_references("See page 320 and Table 6.1 on pg. 318")
        [PageReference(page=318, type='table'), PageReference(page=320, type='page')]
    """
    if not text:
        return []

    references: List[PageReference] = []
    seen = set()

    for pattern, ref_type in ((TABLE_PATTERN, "table"), (PAGE_PATTERN, "page")):
        for match in pattern.finditer(text):
            page = int(match.group(1))
            if page not in seen:
                seen.add(page)
                references.append(PageReference(page=page, type=ref_type))

    return references
