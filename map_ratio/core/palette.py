"""Colour helpers: hex parsing, RGB→HSV conversion (scalar and numpy).

HSV here is H in degrees [0, 360), S and V in [0, 1]. The scalar and array
versions perform the same float operations in the same order, so a pixel
gets bit-identical H/S/V whichever path classifies it.
"""

import re

import numpy as np

RGB = tuple[int, int, int]

_HEX_RE = re.compile(r'^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$')


def hex_to_rgb(hex_str: str) -> RGB | None:
    """Parse '#rrggbb', 'rrggbb' or '#rgb'. Returns None if invalid."""
    m = _HEX_RE.match(hex_str.strip())
    if not m:
        return None
    digits = m.group(1)
    if len(digits) == 3:
        digits = ''.join(c * 2 for c in digits)
    return (int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16))


def rgb_to_hex(rgb: RGB) -> str:
    r, g, b = rgb
    return f'#{r:02x}{g:02x}{b:02x}'


def rgb_to_hsv(r: int, g: int, b: int) -> tuple[float, float, float]:
    """Convert 8-bit RGB to (h, s, v).

    Hue follows the six-sector formula, picking the sector from the max
    channel with ties resolved red, then green, then blue. Achromatic
    pixels (max == min) get h = 0.
    """
    rf = r / 255.0
    gf = g / 255.0
    bf = b / 255.0

    mx = max(rf, gf, bf)
    mn = min(rf, gf, bf)
    delta = mx - mn
    s = 0.0 if mx == 0 else delta / mx

    h = 0.0
    if delta != 0:
        if mx == rf:
            h = (gf - bf) / delta + (6.0 if gf < bf else 0.0)
        elif mx == gf:
            h = (bf - rf) / delta + 2.0
        else:
            h = (rf - gf) / delta + 4.0
        h = h / 6.0 * 360.0

    return h, s, mx


def rgb_to_hsv_array(rgb: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Vectorised rgb_to_hsv over an (N, 3) uint8 array."""
    norm = rgb.astype(np.float64) / 255.0
    r, g, b = norm[:, 0], norm[:, 1], norm[:, 2]

    mx = norm.max(axis=1)
    mn = norm.min(axis=1)
    delta = mx - mn
    chromatic = delta != 0

    # Substitute 1.0 where the real denominator is zero; those lanes are
    # overwritten below, this only keeps numpy from warning about 0/0.
    s = np.where(mx == 0, 0.0, delta / np.where(mx == 0, 1.0, mx))
    d = np.where(chromatic, delta, 1.0)

    h_red = (g - b) / d + np.where(g < b, 6.0, 0.0)
    h_green = (b - r) / d + 2.0
    h_blue = (r - g) / d + 4.0
    h = np.where(r == mx, h_red, np.where(g == mx, h_green, h_blue))
    h = np.where(chromatic, h / 6.0 * 360.0, 0.0)

    return h, s, mx
