import logging
from io import BytesIO
from typing import Any, Dict, List, Optional

import numpy as np
import requests
from PIL import Image as PILImage, UnidentifiedImageError

from ..exceptions import IDRRequestError, MetadataFieldError
from ..models import Dataset, Image, Project, ProjectDetail, annotation_dictionary

logger = logging.getLogger(__name__)


class IDRConnector:
    """
    Connector for browsing the Image Data Resource (IDR) through its public
    webgateway / webclient JSON API.

    The IDR is organised as Project -> Dataset -> Image. Every call here is a
    single blocking GET; there is no paging, retrying or caching.
    """

    BASE_URL = "https://idr.openmicroscopy.org"

    def __init__(self, server_url: str = BASE_URL, timeout: Optional[float] = None):
        """
        Initialize the IDR connector.

        Args:
            server_url: Base URL of the OMERO.web server
            timeout: Optional per-request timeout in seconds
        """
        self.server_url = server_url.rstrip("/")
        self.timeout = timeout

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> requests.Response:
        url = f"{self.server_url}{path}"
        logger.debug(f"GET {url} params={params}")

        try:
            response = requests.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise IDRRequestError(url, f"Request failed ({e})") from e

        if response.status_code != 200:
            raise IDRRequestError(url, "Unexpected response", response.status_code)

        return response

    def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        response = self._get(path, params)
        try:
            return response.json()
        except ValueError as e:
            raise IDRRequestError(f"{self.server_url}{path}", "Malformed JSON body") from e

    def _get_list(self, path: str, what: str) -> List[Dict[str, Any]]:
        data = self._get_json(path)
        if not isinstance(data, list):
            raise MetadataFieldError(what, f"response of {path}")
        return data

    def _get_image(self, path: str) -> np.ndarray:
        response = self._get(path)
        try:
            with PILImage.open(BytesIO(response.content)) as img:
                if img.mode not in ("L", "RGB", "RGBA", "I;16", "I"):
                    img = img.convert("RGB")
                return np.asarray(img)
        except (UnidentifiedImageError, OSError) as e:
            raise IDRRequestError(f"{self.server_url}{path}", "Response is not a decodable image") from e

    # Projects

    def list_projects(self) -> List[Project]:
        """
        Fetch every public project.

        Returns:
            Project records in server order (not filtered, not sorted)
        """
        records = self._get_list("/webgateway/proj/list/", "projects")
        logger.info(f"Fetched {len(records)} projects from {self.server_url}")
        return [Project(**record) for record in records]

    def fetch_project(self, project_id: int) -> Dict[str, Any]:
        """Raw ``/webgateway/proj/{id}/detail/`` record."""
        data = self._get_json(f"/webgateway/proj/{project_id}/detail/")
        if not isinstance(data, dict):
            raise MetadataFieldError("project", f"detail of project {project_id}")
        return data

    def project_detail(self, project_id: int) -> ProjectDetail:
        """Project detail with the publication title and experiment description pulled out."""
        detail = ProjectDetail.from_record(self.fetch_project(project_id))
        logger.info(f"Project {detail.id}: {detail.publication_title}")
        return detail

    def fetch_annotations(self, project_id: int) -> List[Dict[str, Any]]:
        """
        Fetch the annotations attached to a project.

        Args:
            project_id: IDR project id

        Returns:
            List of annotation records (map annotations, tags, files, ...)
        """
        data = self._get_json("/webclient/api/annotations/", params={"project": project_id})
        if not isinstance(data, dict) or not isinstance(data.get("annotations"), list):
            raise MetadataFieldError("annotations", f"annotations of project {project_id}")
        return data["annotations"]

    def project_annotations(self, project_id: int) -> Dict[str, str]:
        return annotation_dictionary(self.fetch_annotations(project_id))

    # Datasets

    def list_datasets(self, project_id: int) -> List[Dataset]:
        records = self._get_list(f"/webgateway/proj/{project_id}/children/", "datasets")
        logger.info(f"Project {project_id} has {len(records)} datasets")
        return [Dataset(**record) for record in records]

    def fetch_dataset(self, dataset_id: int) -> Dataset:
        data = self._get_json(f"/webgateway/dataset/{dataset_id}/detail/")
        if not isinstance(data, dict):
            raise MetadataFieldError("dataset", f"detail of dataset {dataset_id}")
        return Dataset(**data)

    # Images

    def list_images(self, dataset_id: int) -> List[Image]:
        records = self._get_list(f"/webgateway/dataset/{dataset_id}/children/", "images")
        logger.info(f"Dataset {dataset_id} has {len(records)} images")
        return [Image(**record) for record in records]

    def fetch_thumbnail(self, thumb_url: str) -> np.ndarray:
        """
        Fetch a thumbnail by its server-relative URL (the ``thumb_url`` of an image record).
        """
        return self._get_image(thumb_url)

    def fetch_thumbnails(self, images: List[Image]) -> List[np.ndarray]:
        """Fetch the thumbnail of each image one at a time, in the order given."""
        thumbnails = []
        for i, image in enumerate(images, 1):
            logger.info(f"Fetching thumbnail {i}/{len(images)} (image {image.id})")
            thumbnails.append(self.fetch_thumbnail(image.thumbnail_path))
        return thumbnails

    def fetch_image(self, image_id: int) -> np.ndarray:
        """
        Fetch the rendered full-resolution plane of an image.

        Args:
            image_id: IDR image id

        Returns:
            Pixel array, (H, W) or (H, W, C)
        """
        logger.info(f"Fetching full image {image_id}")
        return self._get_image(f"/webgateway/render_image/{image_id}")
