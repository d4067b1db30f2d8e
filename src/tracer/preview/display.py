"""Conversion of linear render output to displayable 8-bit color.

Rendered colors are linear averages of samples. Before they are written to
an image file they are:

1. Clamped to [0, 1]
2. Gamma corrected with gamma 2 (square root)
3. Scaled to bytes as int(256 * clamp(x, 0, 0.999)), so 1.0 maps to 255

Example:
    >>> import numpy as np
    >>> from src.tracer.preview.display import color_to_rgb8
    >>> color_to_rgb8(np.array([0.5, 0.5, 1.0]))
    array([181, 181, 255], dtype=uint8)
"""

import numpy as np
import numpy.typing as npt

# Largest value allowed before scaling to bytes
BYTE_SCALE = 256.0
MAX_INTENSITY = 0.999


def linear_to_gamma(
    image: npt.NDArray[np.floating],
) -> npt.NDArray[np.float64]:
    """Apply gamma 2 correction after clamping to [0, 1].

    Args:
        image: Linear color values of any shape.

    Returns:
        Gamma corrected values in [0, 1].
    """
    # Clamp before sqrt to avoid NaN from negative values
    clamped = np.clip(np.asarray(image, dtype=np.float64), 0.0, 1.0)
    return np.sqrt(clamped)


def color_to_rgb8(
    image: npt.NDArray[np.floating],
) -> npt.NDArray[np.uint8]:
    """Encode linear color values as 8-bit gamma corrected bytes.

    Args:
        image: Linear color values, last axis RGB.

    Returns:
        Array of the same shape with dtype uint8.
    """
    gamma = np.clip(linear_to_gamma(image), 0.0, MAX_INTENSITY)
    return (BYTE_SCALE * gamma).astype(np.uint8)
