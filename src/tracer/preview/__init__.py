"""Preview module for color encoding and image output.

Components:
    display: Gamma correction and 8-bit color encoding
    export: Plain PPM writer/reader and PNG export
"""

from src.tracer.preview.display import color_to_rgb8, linear_to_gamma
from src.tracer.preview.export import (
    PPMHeader,
    read_ppm,
    read_ppm_header,
    save_png,
    write_ppm,
)

__all__ = [
    "linear_to_gamma",
    "color_to_rgb8",
    "PPMHeader",
    "write_ppm",
    "read_ppm",
    "read_ppm_header",
    "save_png",
]
