"""Shared fixtures: fake IDR responses and synthetic images."""

from io import BytesIO
from unittest.mock import MagicMock

import numpy as np
import pytest
from PIL import Image

BASE_URL = "https://idr.test"


def make_response(json_data=None, content=b"", status_code=200):
    response = MagicMock()
    response.status_code = status_code
    response.content = content
    response.text = str(json_data)
    if json_data is None:
        response.json.side_effect = ValueError("No JSON object could be decoded")
    else:
        response.json.return_value = json_data
    return response


def png_bytes(array):
    buffer = BytesIO()
    Image.fromarray(np.asarray(array, dtype=np.uint8)).save(buffer, format="PNG")
    return buffer.getvalue()


def description(title, experiment):
    return f"Publication Title\n{title}\n\nExperiment Description\n{experiment}"


def square_image(size=10, top=3, left=3, side=3, value=200):
    image = np.zeros((size, size), dtype=np.uint8)
    image[top:top + side, left:left + side] = value
    return image


class FakeIDR:
    """Routes ``requests.get`` calls to canned responses keyed by URL."""

    def __init__(self, routes):
        self.routes = routes
        self.calls = []

    def __call__(self, url, params=None, timeout=None):
        self.calls.append((url, params))
        key = url
        if params:
            key += "?" + "&".join(f"{k}={v}" for k, v in params.items())
        if key not in self.routes:
            return make_response({"message": "Not found"}, status_code=404)
        return self.routes[key]


@pytest.fixture
def square():
    return square_image()


@pytest.fixture
def cell_image():
    """20x20 image with one 5x5 cell (area 25) and a 2x2 speck (area 4)."""
    image = np.zeros((20, 20), dtype=np.uint8)
    image[4:9, 4:9] = 220
    image[15:17, 15:17] = 180
    return image


@pytest.fixture
def idr_routes(cell_image):
    projects = [
        {"id": 3, "name": "idr0002-beta/experimentA", "description": description("Title B", "Beta cells")},
        {"id": 1, "name": "idr0001-alpha/experimentA", "description": description("Title A", "Alpha cells")},
        {"id": 2, "name": "idr0001-alpha/screenA", "description": description("Title A", "Alpha screen")},
        {"id": 5, "name": "idr0001-alpha/experimentB", "description": description("Title A", "Alpha again")},
    ]
    annotations = {
        "annotations": [
            {"id": 10, "class": "TagAnnotationI", "textValue": "tag"},
            {
                "id": 11,
                "class": "MapAnnotationI",
                "ns": "openmicroscopy.org/omero/client/mapAnnotation",
                "values": [
                    ["Study Type", "cell counting"],
                    ["Publication DOI", "https://doi.org/10.1000/old"],
                    ["Publication DOI", "https://doi.org/10.1000/alpha"],
                ],
            },
        ],
        "experimenters": [],
    }
    datasets = [{"id": 51, "name": "plate1", "childCount": 2}]
    images = [
        {"id": 901, "name": "cells_01.tif", "thumb_url": "/webgateway/render_thumbnail/901/"},
        {"id": 902, "name": "cells_02.tif", "thumb_url": "/webgateway/render_thumbnail/902/"},
    ]

    detail = dict(projects[1])
    return {
        f"{BASE_URL}/webgateway/proj/list/": make_response(projects),
        f"{BASE_URL}/webgateway/proj/1/detail/": make_response(detail),
        f"{BASE_URL}/webclient/api/annotations/?project=1": make_response(annotations),
        f"{BASE_URL}/webgateway/proj/1/children/": make_response(datasets),
        f"{BASE_URL}/webgateway/dataset/51/detail/": make_response(datasets[0]),
        f"{BASE_URL}/webgateway/dataset/51/children/": make_response(images),
        f"{BASE_URL}/webgateway/render_thumbnail/901/": make_response(content=png_bytes(np.full((6, 6), 10))),
        f"{BASE_URL}/webgateway/render_thumbnail/902/": make_response(content=png_bytes(np.full((6, 6), 20))),
        f"{BASE_URL}/webgateway/render_image/902": make_response(content=png_bytes(cell_image)),
    }
