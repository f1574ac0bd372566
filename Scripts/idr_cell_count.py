#!/usr/bin/env python
import argparse
import logging
import sys

from OpenMicroscopyData.config import TutorialConfig
from OpenMicroscopyData.exceptions import OutputWriteError
from OpenMicroscopyData.tutorial import run_tutorial


def build_config(args) -> TutorialConfig:
    config = TutorialConfig.from_yaml(args.config) if args.config else TutorialConfig()

    overrides = {
        "output_dir": args.output_dir,
        "project_id": args.project_id,
        "publication_title": args.publication_title,
        "experiment": args.experiment,
        "dataset_name": args.dataset_name,
        "image_index": args.image_index,
        "threshold": args.threshold,
        "min_pixel_count": args.min_pixel_count,
        "smoothing_factor": args.smoothing_factor,
    }
    overrides = {key: value for key, value in overrides.items() if value is not None}
    if args.rocrate:
        overrides["rocrate"] = True

    return TutorialConfig(**{**config.model_dump(), **overrides})


def main():
    parser = argparse.ArgumentParser(description='Browse the Image Data Resource and count cells in one image')
    parser.add_argument('--config', help='YAML file with tutorial settings')
    parser.add_argument('--output-dir', help='Directory for the project table and figures')
    parser.add_argument('--project-id', type=int, help='IDR project id (must be an experiment project)')
    parser.add_argument('--publication-title', help='Select the project by its publication title')
    parser.add_argument('--experiment', help='Experiment to use when a publication has several, e.g. experimentB')
    parser.add_argument('--dataset-name', help='Name of the dataset to open')
    parser.add_argument('--image-index', type=int, help='Zero-based position of the image in the dataset')
    parser.add_argument('--threshold', type=float, help='Grayscale threshold (0-255)')
    parser.add_argument('--min-pixel-count', type=int, help='Regions with this many pixels or fewer are debris')
    parser.add_argument('--smoothing-factor', type=int, help='Moving-average width for drawn outlines')
    parser.add_argument('--rocrate', action='store_true', help='Package the outputs as an RO-Crate')
    parser.add_argument('--verbose', action='store_true', help='Log every request')

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s"
    )

    try:
        config = build_config(args)
        result = run_tutorial(config)
    except (ValueError, OutputWriteError) as e:
        # IDRRequestError and MetadataFieldError are ValueErrors
        print(f"Error: {e}")
        sys.exit(1)

    print(f"Counted {result.cell_count} cells")
    for path in result.files:
        print(path)


if __name__ == "__main__":
    main()
