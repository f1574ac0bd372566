from pydantic import BaseModel, field_validator
from typing import Any, Dict

from ..exceptions import MetadataFieldError
from ..metadata import parse_description, description_field


class Project(BaseModel):
    id: int
    name: str
    description: str = ""

    @field_validator("description", mode="before")
    @classmethod
    def _none_as_empty(cls, value):
        return "" if value is None else value


class ProjectDetail(BaseModel):
    """
    A single project with its description split into named fields.

    IDR descriptions are blocks separated by blank lines, each starting with
    a heading line such as ``Publication Title`` or ``Experiment Description``.
    """
    id: int
    name: str
    publication_title: str
    description: str
    raw_description: str = ""
    sections: Dict[str, str] = {}

    @classmethod
    def from_record(
        cls,
        record: Dict[str, Any],
        title_field: str = "Publication Title",
        description_heading: str = "Experiment Description",
    ) -> "ProjectDetail":
        """
        Build a ProjectDetail from a ``/webgateway/proj/{id}/detail/`` record.

        Raises:
            MetadataFieldError: if the record lacks an id, a name, or one of
                the requested description headings
        """
        for key in ("id", "name"):
            if key not in record:
                raise MetadataFieldError(key, "project detail")

        raw = record.get("description") or ""
        context = f"description of project {record['id']}"
        return cls(
            id=record["id"],
            name=record["name"],
            publication_title=description_field(raw, title_field, context),
            description=description_field(raw, description_heading, context),
            raw_description=raw,
            sections=parse_description(raw),
        )
