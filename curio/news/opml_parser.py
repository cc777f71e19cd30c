"""OPML parser for bulk-importing sources from a feed reader export."""

import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Optional

from .models import Source

DEFAULT_CATEGORY = "Uncategorized"


def parse_opml(opml_path: Path, category: Optional[str] = None) -> list[Source]:
    """
    Parse an OPML file into sources.

    Feeds nested under a folder outline take the folder's name as their
    category unless `category` is given, which overrides it for every feed.

    Args:
        opml_path: Path to the OPML file
        category: Category assigned to every imported source

    Returns:
        List of Source objects, first occurrence of each URL only
    """
    tree = ET.parse(opml_path)
    body = tree.getroot().find("body")
    if body is None:
        return []

    sources: list[Source] = []
    seen = set()

    def walk(node: ET.Element, folder: Optional[str]) -> None:
        for outline in node.findall("outline"):
            xml_url = outline.get("xmlUrl")
            if xml_url:
                if xml_url not in seen:
                    seen.add(xml_url)
                    sources.append(
                        Source(url=xml_url, category=category or folder or DEFAULT_CATEGORY)
                    )
                continue
            # Folder outline
            walk(outline, outline.get("title") or outline.get("text") or folder)

    walk(body, None)
    return sources
