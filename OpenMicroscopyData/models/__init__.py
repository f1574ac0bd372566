from .project import Project, ProjectDetail
from .dataset import Dataset
from .image import Image
from .annotation import MapAnnotation, flatten_annotation_values, annotation_dictionary

__all__ = [
    "Project",
    "ProjectDetail",
    "Dataset",
    "Image",
    "MapAnnotation",
    "flatten_annotation_values",
    "annotation_dictionary",
]
