"""Unit test configuration - sample TOC fixtures for isolated testing"""

import pytest

from regs_search.toc_ranking import TocEntry

# AS/NZS 3000:2018 excerpt (sections 1, 2 and 6)
AS_NZS_3000_TOC = [
    ("1", "SCOPE, APPLICATION AND FUNDAMENTAL PRINCIPLES", 33, 1),
    ("1.1", "SCOPE", 33, 2),
    ("1.2", "APPLICATION", 33, 2),
    ("1.3", "REFERENCED DOCUMENTS", 34, 2),
    ("1.4", "DEFINITIONS", 34, 2),
    ("1.5", "FUNDAMENTAL PRINCIPLES", 54, 2),
    ("1.5.1", "Protection against dangers and damage", 54, 3),
    ("1.5.2", "Control and isolation", 55, 3),
    ("1.5.3", "Protection against electric shock", 55, 3),
    ("2", "GENERAL ARRANGEMENT, CONTROL AND PROTECTION", 75, 1),
    ("2.1", "GENERAL", 75, 2),
    ("2.1.1", "Application", 75, 3),
    ("2.1.2", "Selection and installation", 75, 3),
    ("6", "DAMP SITUATIONS", 316, 1),
    ("6.1", "GENERAL", 316, 2),
    ("6.1.1", "Application", 316, 3),
    ("6.1.2", "Selection and installation", 316, 3),
    ("6.2", "BATHS, SHOWERS AND OTHER FIXED WATER CONTAINERS", 317, 2),
    ("6.2.1", "Scope", 317, 3),
    ("6.2.2", "Classification of zones", 317, 3),
    ("6.2.3", "Protection against electric shock—Prohibited measures", 320, 3),
    ("6.2.4", "Selection and installation of electrical equipment", 320, 3),
    ("6.3", "SWIMMING POOLS, PADDLING POOLS AND SPA POOLS OR TUBS", 336, 2),
    ("6.3.1", "Scope", 336, 3),
    ("6.3.2", "Classification of zones", 337, 3),
    ("6.3.3", "Protection against electric shock", 338, 3),
    ("6.3.4", "Selection and installation of electrical equipment", 339, 3),
]


def _make_entry(entry_id, section, title, page, level=1, full_path=None, embedding=None, document_id="1"):
    """Build a TocEntry with test defaults"""
    return TocEntry(
        id=str(entry_id),
        document_id=document_id,
        section_number=section,
        title=title,
        document_page=page,
        level=level,
        full_path=full_path,
        embedding=embedding,
    )


@pytest.fixture
def make_entry():
    """Factory for TocEntry objects"""
    return _make_entry


@pytest.fixture
def sample_toc():
    """AS/NZS 3000 TOC excerpt without embeddings"""
    return [
        _make_entry(i + 1, section, title, page, level)
        for i, (section, title, page, level) in enumerate(AS_NZS_3000_TOC)
    ]
