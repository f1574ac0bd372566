"""Tests for the spreadsheet writer, montage and figure output."""

import numpy as np
import pandas as pd
import pytest

from OpenMicroscopyData.exceptions import OutputWriteError
from OpenMicroscopyData.figures import build_montage, save_image_figure, save_overlay_figure, write_table
from OpenMicroscopyData.segmentation import segment_cells, smooth_boundaries


def test_write_table_roundtrip(tmp_path):
    table = pd.DataFrame({"id": [1, 2], "name": ["a/experimentA", "b/experimentA"], "description": ["x", "y"]})
    path = write_table(table, tmp_path / "out" / "projectTable.xlsx")

    assert path.exists()
    loaded = pd.read_excel(path)
    assert list(loaded["id"]) == [1, 2]
    assert list(loaded.columns) == ["id", "name", "description"]


def test_write_table_overwrites(tmp_path):
    path = tmp_path / "projectTable.xlsx"
    write_table(pd.DataFrame({"id": [1, 2, 3]}), path)
    write_table(pd.DataFrame({"id": [7]}), path)
    assert list(pd.read_excel(path)["id"]) == [7]


def test_write_empty_table(tmp_path):
    path = write_table(pd.DataFrame(columns=["id", "name", "description"]), tmp_path / "empty.xlsx")
    assert pd.read_excel(path).empty


def test_write_failure_reports_path(tmp_path):
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("file")
    target = blocker / "projectTable.xlsx"

    with pytest.raises(OutputWriteError) as excinfo:
        write_table(pd.DataFrame({"id": [1]}), target)

    assert excinfo.value.path == str(target)
    assert isinstance(excinfo.value.cause, OSError)


def test_montage_layout_and_order():
    images = [np.full((8, 8), value, dtype=np.uint8) for value in (0, 50, 100)]
    montage = build_montage(images, thumbnail_size=8, border=2)

    # 3 images -> 2 x 2 grid
    assert montage.shape == (22, 22, 3)
    assert montage.dtype == np.uint8
    assert (montage[2:10, 2:10] == 0).all()
    assert (montage[2:10, 12:20] == 50).all()
    assert (montage[12:20, 2:10] == 100).all()
    assert (montage[12:20, 12:20] == 255).all()
    assert (montage[0:2, :] == 255).all()


def test_montage_keeps_aspect_ratio():
    wide = np.zeros((4, 8, 3), dtype=np.uint8)
    montage = build_montage([wide], thumbnail_size=8, border=0, background=255)

    assert montage.shape == (8, 8, 3)
    assert (montage[0:2] == 255).all()
    assert (montage[2:6] == 0).all()
    assert (montage[6:8] == 255).all()


def test_montage_needs_images():
    with pytest.raises(ValueError):
        build_montage([])


def test_save_figures(tmp_path, cell_image):
    regions = smooth_boundaries(segment_cells(cell_image, 90, 10), 3)

    paths = [
        save_image_figure(cell_image, tmp_path / "gray.png"),
        save_image_figure(cell_image > 90, tmp_path / "bw.png"),
        save_image_figure(np.stack([cell_image] * 3, axis=-1), tmp_path / "rgb.png", title="RGB"),
        save_overlay_figure(cell_image, regions, tmp_path / "overlay.png", title="Image-ID: 1 / a"),
        save_overlay_figure(cell_image, [], tmp_path / "empty_overlay.png"),
    ]

    for path in paths:
        assert path.exists()
        assert path.read_bytes()[:8] == b"\x89PNG\r\n\x1a\n"


def test_figure_write_failure(tmp_path, cell_image):
    blocker = tmp_path / "file"
    blocker.write_text("x")
    with pytest.raises(OutputWriteError):
        save_image_figure(cell_image, blocker / "figure.png")
