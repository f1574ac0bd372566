import pathlib
from typing import Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field

from .connectors.IDRConnector import IDRConnector


class TutorialConfig(BaseModel):
    """
    Selection constants for one tutorial run.

    Defaults reproduce the choices made in the narrated walkthrough: the
    87th publication in the experiment table, its 8th dataset, the 4th
    image of that dataset, a threshold of 90 and a 200 px debris filter.
    Indices are zero-based.
    """
    model_config = ConfigDict(extra="forbid")

    base_url: str = IDRConnector.BASE_URL
    output_dir: str = "."
    timeout: Optional[float] = Field(default=None, gt=0)

    # Project selection, most specific wins: project_id, publication_title, project_index
    project_id: Optional[int] = None
    publication_title: Optional[str] = None
    experiment: Optional[str] = None
    project_index: int = Field(default=86, ge=0)

    # Dataset and image selection
    dataset_name: Optional[str] = None
    dataset_index: int = Field(default=7, ge=0)
    image_index: int = Field(default=3, ge=0)

    # Cell counting
    threshold: float = Field(default=90, ge=0, le=255)
    min_pixel_count: int = Field(default=200, ge=0)
    smoothing_factor: int = Field(default=31, ge=1)

    # Montage layout
    thumbnail_size: int = Field(default=128, gt=0)
    montage_border: int = Field(default=10, ge=0)

    rocrate: bool = False

    @classmethod
    def from_yaml(cls, path: Union[str, pathlib.Path]) -> "TutorialConfig":
        """
        Load a config from a YAML mapping; missing keys keep their defaults.

        Raises:
            ValueError: if the file does not hold a mapping, or holds unknown
                or out-of-range keys
        """
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a mapping, got {type(data).__name__}")

        return cls(**data)
