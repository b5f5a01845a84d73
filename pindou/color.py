"""Colour space helpers: sRGB -> CIE Lab and the CIE76 distance."""

import numpy as np

# sRGB to XYZ (D65) matrix
_SRGB_TO_XYZ = np.array([
    [0.4124564, 0.3575761, 0.1804375],
    [0.2126729, 0.7151522, 0.0721750],
    [0.0193339, 0.1191920, 0.9503041],
], dtype=np.float64)

# D65 reference white (Xn, Yn, Zn) on the 0-100 scale
D65_WHITE = np.array([95.047, 100.000, 108.883], dtype=np.float64)

_GAMMA_BREAK = 0.04045
_LAB_EPSILON = 0.008856


def rgb_to_lab(rgb) -> np.ndarray:
    """Convert sRGB (0-255) to CIE Lab. Input shape: (..., 3).

    Float input is accepted, so averaged block colours do not need to be
    rounded before conversion.
    """
    c = np.asarray(rgb, dtype=np.float64) / 255.0
    # Gamma decode
    linear = np.where(c <= _GAMMA_BREAK, c / 12.92, ((c + 0.055) / 1.055) ** 2.4)
    # Linear RGB -> XYZ, scaled to 0-100 and normalised by the white point
    xyz = (linear @ _SRGB_TO_XYZ.T) * 100.0 / D65_WHITE
    # XYZ -> Lab (piecewise)
    f = np.where(xyz > _LAB_EPSILON,
                 np.cbrt(xyz),
                 7.787 * xyz + 16.0 / 116.0)
    L = 116.0 * f[..., 1] - 16.0
    a = 500.0 * (f[..., 0] - f[..., 1])
    b = 200.0 * (f[..., 1] - f[..., 2])
    return np.stack([L, a, b], axis=-1)


def delta_e(lab1, lab2):
    """CIE76 colour difference (Euclidean in Lab) over the last axis.

    Broadcasts like numpy; two single colours give a plain float.
    """
    diff = np.asarray(lab1, dtype=np.float64) - np.asarray(lab2, dtype=np.float64)
    d = np.sqrt((diff ** 2).sum(axis=-1))
    if np.ndim(d) == 0:
        return float(d)
    return d


def hex_to_rgb(h: str) -> tuple[int, int, int]:
    """Convert '#RRGGBB' to (R, G, B)."""
    h = h.lstrip("#")
    return int(h[0:2], 16), int(h[2:4], 16), int(h[4:6], 16)


def clamp_channel(values):
    """Clamp channel values to the displayable 0-255 range."""
    return np.clip(values, 0, 255)
