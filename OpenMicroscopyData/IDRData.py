import json
import logging
import pathlib
from datetime import datetime
from typing import Dict, List, Optional, Sequence, TypeVar, Union

from pydantic import BaseModel

from .connectors.IDRConnector import IDRConnector
from .models import Dataset, Image, ProjectDetail

logger = logging.getLogger(__name__)

T = TypeVar("T")


def pick(items: Sequence[T], index: int, what: str) -> T:
    if not 0 <= index < len(items):
        raise ValueError(f"{what} index {index} is out of range ({len(items)} available)")
    return items[index]


class IDRData(BaseModel):
    """
    Metadata gathered for one IDR project: its description, study
    annotations, datasets, and the images of the selected dataset.
    """
    project: ProjectDetail
    annotations: Dict[str, str] = {}
    datasets: List[Dataset] = []
    dataset: Optional[Dataset] = None
    images: List[Image] = []

    @property
    def publication_doi(self) -> Optional[str]:
        return self.annotations.get("Publication DOI")

    @classmethod
    def from_api(
        cls,
        connector: IDRConnector,
        project_id: int,
        dataset_name: Optional[str] = None,
        dataset_index: int = 0,
    ) -> "IDRData":
        """
        Walk a project down to the images of one of its datasets.

        Args:
            connector: Connector for the IDR server
            project_id: Id of a project taken from the project list
            dataset_name: Name of the dataset to open; overrides dataset_index
            dataset_index: Position of the dataset in the project's children

        Returns:
            Populated IDRData. A project without datasets yields no dataset
            and no images.
        """
        project = connector.project_detail(project_id)
        annotations = connector.project_annotations(project_id)
        datasets = connector.list_datasets(project_id)

        if not datasets:
            logger.warning(f"Project {project_id} has no datasets")
            return cls(project=project, annotations=annotations)

        if dataset_name is not None:
            named = [dataset for dataset in datasets if dataset.name == dataset_name]
            if not named:
                raise ValueError(f"Project {project_id} has no dataset named {dataset_name!r}")
            selected = named[0]
        else:
            selected = pick(datasets, dataset_index, "Dataset")

        dataset = connector.fetch_dataset(selected.id)
        images = connector.list_images(dataset.id)

        return cls(
            project=project,
            annotations=annotations,
            datasets=datasets,
            dataset=dataset,
            images=images,
        )

    def to_rocrate(self, output_dir: Union[str, pathlib.Path], files: Sequence[Union[str, pathlib.Path]]) -> str:
        """
        Package the files of a run as an RO-Crate in ``output_dir``.

        The crate describes the IDR project the files were derived from; each
        file becomes a dataset entry.

        Args:
            output_dir: Crate directory, normally the run's output directory
            files: Paths of the produced table and figures

        Returns:
            GUID of the created RO-Crate
        """
        from fairscape_cli.models.rocrate import GenerateROCrate, AppendCrate
        from fairscape_cli.models.dataset import GenerateDataset

        output_path = pathlib.Path(output_dir)
        output_path.mkdir(parents=True, exist_ok=True)

        author = self.annotations.get("Publication Authors", "IDR Contributors")
        doi = self.publication_doi or ""
        date_published = datetime.now().isoformat()

        keywords = ["IDR", "microscopy", "cell counting"]
        for key in ("Study Type", "Organism", "Imaging Method"):
            if self.annotations.get(key):
                keywords.append(self.annotations[key])

        GenerateROCrate(
            path=output_path,
            guid="",
            name=f"Cell count for {self.project.name}",
            description=self.project.description,
            keywords=keywords,
            license=self.annotations.get("License", "https://creativecommons.org/licenses/by/4.0/"),
            hasPart=[],
            author=author,
            datePublished=date_published,
            associatedPublication=doi,
            isPartOf=[],
            version="1.0"
        )

        for file_path in files:
            file_path = pathlib.Path(file_path)
            dataset = GenerateDataset(
                guid=None,
                url=None,
                author=author,
                name=file_path.name,
                description=f"{file_path.stem} derived from IDR project {self.project.id} ({self.project.publication_title})",
                keywords=keywords,
                datePublished=date_published,
                version="1.0",
                associatedPublication=doi or None,
                additionalDocumentation=None,
                format=file_path.suffix.lstrip(".") or "unknown",
                schema="",
                derivedFrom=[],
                usedBy=[],
                generatedBy=[],
                filepath=None,
                contentUrl=f"file:///{file_path.name}",
                cratePath=output_path
            )
            AppendCrate(output_path, [dataset])

        metadata_path = output_path / "ro-crate-metadata.json"
        with open(metadata_path, 'r') as f:
            crate_data = json.load(f)
            root_id = crate_data["@graph"][1]["@id"]

        logger.info(f"Wrote RO-Crate {root_id} to {metadata_path}")
        return root_id
