import logging
from typing import Dict, List, Optional, Sequence

import pandas as pd
from pydantic import BaseModel

from .exceptions import MetadataFieldError

logger = logging.getLogger(__name__)

EXPERIMENT_MARKER = "/experiment"
PROJECT_COLUMNS = ["id", "name", "description"]


def parse_description(text: Optional[str]) -> Dict[str, str]:
    """
    Split an IDR description into named sections.

    Descriptions are written as blocks separated by blank lines. The first
    line of each block is the heading, the remaining lines are its value::

        Publication Title
        Super-resolution microscopy of ...

        Experiment Description
        Images of ...

    Args:
        text: Raw multi-line description (None is treated as empty)

    Returns:
        Mapping of heading to the block's value, in order of appearance
    """
    sections: Dict[str, str] = {}
    block: List[str] = []

    lines = (text or "").splitlines() + [""]
    for line in lines:
        if line.strip():
            block.append(line.strip())
            continue
        if block:
            sections[block[0]] = "\n".join(block[1:])
            block = []

    return sections


def description_field(text: Optional[str], heading: str, context: str = "description") -> str:
    """
    Look up one section of a description by its heading.

    Raises:
        MetadataFieldError: if the heading is absent or has no value
    """
    value = parse_description(text).get(heading)
    if not value:
        raise MetadataFieldError(heading, context)
    return value


def projects_to_table(projects: Sequence[BaseModel]) -> pd.DataFrame:
    """Flatten project records into a table with ``id``, ``name`` and ``description`` columns."""
    rows = [project.model_dump(include=set(PROJECT_COLUMNS)) for project in projects]
    return pd.DataFrame(rows, columns=PROJECT_COLUMNS)


def experiment_projects(table: pd.DataFrame, marker: str = EXPERIMENT_MARKER) -> pd.DataFrame:
    """
    Keep only projects that hold experiment data, sorted by id.

    IDR names such projects ``<study>/experimentA``; the remaining rows are
    study containers without images.

    Args:
        table: Project table from ``projects_to_table``
        marker: Substring identifying experiment projects

    Returns:
        Filtered copy with a fresh index. May be empty.
    """
    if table.empty:
        return table.iloc[0:0].reset_index(drop=True)

    mask = table["name"].astype(str).str.contains(marker, regex=False)
    filtered = table[mask].sort_values("id", kind="stable").reset_index(drop=True)
    logger.info(f"Kept {len(filtered)} of {len(table)} projects containing '{marker}'")
    return filtered


def publication_titles(table: pd.DataFrame, heading: str = "Publication Title") -> List[Optional[str]]:
    """Publication title of every row, None where the description has no such heading."""
    return [parse_description(text).get(heading) for text in table["description"]]


def select_project(
    table: pd.DataFrame,
    publication_title: str,
    experiment: Optional[str] = None,
) -> int:
    """
    Resolve a publication title (and optionally an experiment) to a project id.

    One publication may have several experiment projects, e.g.
    ``idr0021-lawo/experimentA`` and ``idr0021-lawo/experimentB``. When that
    happens the row whose name ends with ``experiment`` is chosen; without an
    explicit experiment the first one in id order is used.

    Raises:
        MetadataFieldError: if no row matches
    """
    titles = publication_titles(table)
    matches = table[pd.Series([title == publication_title for title in titles], index=table.index, dtype=bool)]
    if matches.empty:
        raise MetadataFieldError("Publication Title", f"project table (no project titled {publication_title!r})")

    if len(matches) > 1:
        experiments = [name.split("/", 1)[1] if "/" in name else name for name in matches["name"]]
        selected = experiment or experiments[0]
        logger.info(f"{len(matches)} experiments share this publication, using {selected}")
        matches = matches[pd.Series([name == selected for name in experiments], index=matches.index, dtype=bool)]
        if matches.empty:
            raise MetadataFieldError("name", f"project table (no experiment {selected!r})")

    return int(matches.iloc[0]["id"])
