"""Image export utilities for rendered images.

Supported formats:
    - PPM (plain ``P3`` text pixel map, the renderer's native output)
    - PNG (8-bit via Pillow)

A plain PPM file is::

    P3
    <width> <height>
    255
    r g b
    r g b
    ...

with one pixel per line in raster order (left to right, top to bottom).

Example:
    >>> from src.tracer.preview.export import write_ppm, read_ppm_header
    >>> write_ppm([(255, 0, 0), (0, 255, 0)], 2, 1, "out.ppm")
    >>> read_ppm_header("out.ppm")
    PPMHeader(width=2, height=1, max_value=255)
"""

from __future__ import annotations

import os
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import IO, Union

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

PathOrStream = Union[str, "os.PathLike[str]", IO[str]]

PPM_MAGIC = "P3"
PPM_MAX_VALUE = 255


@dataclass(frozen=True)
class PPMHeader:
    """Dimensions and channel range of a plain PPM image."""

    width: int
    height: int
    max_value: int


@contextmanager
def _open_text(target: PathOrStream, mode: str) -> Iterator[IO[str]]:
    """Open a path, or pass an already open stream through untouched.

    A file opened for writing is removed again if the body raises.
    """
    if isinstance(target, (str, os.PathLike)):
        with open(target, mode, encoding="ascii") as f:
            try:
                yield f
            except Exception:
                if "w" in mode:
                    f.close()
                    os.remove(target)
                raise
    else:
        yield target


def write_ppm(
    pixels: Iterable[tuple[int, int, int]],
    width: int,
    height: int,
    dest: PathOrStream,
) -> None:
    """Write pixels as a plain PPM image.

    Args:
        pixels: RGB byte triples in raster order. May be a generator; it is
            consumed as the file is written.
        width: Image width in pixels.
        height: Image height in pixels.
        dest: Output path or text stream.

    Raises:
        OSError: If the destination cannot be opened or written.
        ValueError: If the number of pixels is not width * height.
    """
    with _open_text(dest, "w") as f:
        f.write(f"{PPM_MAGIC}\n{width} {height}\n{PPM_MAX_VALUE}\n")
        count = 0
        for r, g, b in pixels:
            f.write(f"{r} {g} {b}\n")
            count += 1
        if count != width * height:
            raise ValueError(f"Expected {width * height} pixels, got {count}")


def _tokens(f: IO[str]) -> Iterator[str]:
    """Split a PPM stream into whitespace separated tokens, dropping comments."""
    for line in f:
        content = line.split("#", 1)[0]
        yield from content.split()


def _read_header(tokens: Iterator[str]) -> PPMHeader:
    magic = next(tokens, None)
    if magic != PPM_MAGIC:
        raise ValueError(f"Not a plain PPM file (magic {magic!r})")
    try:
        width, height, max_value = [int(next(tokens)) for _ in range(3)]
    except (StopIteration, ValueError) as e:
        raise ValueError("Truncated or malformed PPM header") from e
    if width <= 0 or height <= 0 or max_value <= 0:
        raise ValueError(f"Invalid PPM header values: {width} {height} {max_value}")
    return PPMHeader(width=width, height=height, max_value=max_value)


def read_ppm_header(source: PathOrStream) -> PPMHeader:
    """Read the header of a plain PPM image.

    Raises:
        OSError: If the source cannot be opened.
        ValueError: If the header is malformed.
    """
    with _open_text(source, "r") as f:
        return _read_header(_tokens(f))


def read_ppm(source: PathOrStream) -> npt.NDArray[np.uint8]:
    """Read a plain PPM image into an array of shape (height, width, 3).

    Raises:
        OSError: If the source cannot be opened.
        ValueError: If the file is malformed or has a channel range other
            than 255.
    """
    with _open_text(source, "r") as f:
        tokens = _tokens(f)
        header = _read_header(tokens)
        if header.max_value != PPM_MAX_VALUE:
            raise ValueError(f"Unsupported max value {header.max_value}")
        values = [int(tok) for tok in tokens]

    expected = header.width * header.height * 3
    if len(values) != expected:
        raise ValueError(f"Expected {expected} channel values, got {len(values)}")
    return np.array(values, dtype=np.uint8).reshape(header.height, header.width, 3)


def save_png(image: npt.NDArray[np.uint8], filepath: str | os.PathLike[str]) -> None:
    """Save an 8-bit RGB image array of shape (H, W, 3) as a PNG file."""
    pil_image = PILImage.fromarray(np.ascontiguousarray(image, dtype=np.uint8))
    pil_image.save(filepath)

