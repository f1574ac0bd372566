"""
OpenMicroscopyData - query the Image Data Resource (IDR) and count cells.

Walks the public IDR REST API (project -> dataset -> image), flattens the
returned metadata into tables, and runs a simple threshold-based cell count
on one image.
"""

__version__ = "0.1.0"
