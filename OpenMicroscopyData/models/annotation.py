from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional, Sequence

from ..exceptions import MetadataFieldError

MAP_ANNOTATION_CLASS = "MapAnnotationI"


class MapAnnotation(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[int] = None
    annotation_class: str = Field(default=MAP_ANNOTATION_CLASS, alias="class")
    ns: Optional[str] = None
    values: List[List[Any]] = []

    def to_dict(self) -> Dict[str, str]:
        return flatten_annotation_values(self.values)


def flatten_annotation_values(pairs: Sequence[Sequence[Any]]) -> Dict[str, str]:
    """
    Turn a list of ``[key, value]`` pairs into a dictionary.

    Map annotations may repeat a key. The value of the last occurrence wins,
    regardless of where the first one appeared.

    Args:
        pairs: Sequence of two-element key/value sequences

    Returns:
        Mapping of key to the last value seen for it
    """
    flattened: Dict[str, str] = {}
    for pair in pairs:
        if len(pair) != 2:
            raise MetadataFieldError("values", f"annotation pair {pair!r}")
        key, value = pair
        flattened[str(key)] = str(value)
    return flattened


def annotation_dictionary(annotations: List[Dict[str, Any]]) -> Dict[str, str]:
    """
    Flatten the first map annotation attached to a project.

    For IDR projects the first MapAnnotationI record carries the study
    metadata, including the publication DOI.

    Raises:
        MetadataFieldError: if no map annotation is present
    """
    for record in annotations:
        if record.get("class", MAP_ANNOTATION_CLASS) == MAP_ANNOTATION_CLASS and "values" in record:
            return MapAnnotation(**record).to_dict()
    raise MetadataFieldError("annotations", "map annotation list")
