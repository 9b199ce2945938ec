# domain/image_enhancer.py

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

logger = logging.getLogger(__name__)

DARK_THRESHOLD = 128
CLIP_FRACTION = 0.01

DARK_GAMMA = 0.7
DARK_CONTRAST = 2.0
LIGHT_CONTRAST = 1.4

MIDTONE_RANGE = (30, 150)
MIDTONE_BOOST = 40

EDGE_THRESHOLD = 20
DARK_EDGE_BOOST = 0.3
LIGHT_EDGE_BOOST = 0.15


@dataclass(frozen=True)
class BrightnessStats:
    avg_brightness: float
    min_brightness: int
    max_brightness: int

    @property
    def is_dark(self) -> bool:
        return self.avg_brightness < DARK_THRESHOLD


def contrast_factor(contrast: float) -> float:
    """Formule classique de contraste, appliquée telle quelle au facteur fourni."""
    return (259 * (contrast * 255 + 255)) / (255 * (259 - contrast * 255))


def _brightness(pixels: np.ndarray) -> np.ndarray:
    return pixels[..., :3].astype(np.float64).sum(axis=-1) / 3.0


def _check_pixels(pixels: np.ndarray) -> None:
    if pixels.ndim != 3 or pixels.shape[-1] not in (3, 4):
        raise ValueError(f"Tableau de pixels inattendu (shape={pixels.shape}), attendu HxWx3 ou HxWx4.")


def compute_brightness_stats(pixels: np.ndarray) -> BrightnessStats:
    """
    Luminosité moyenne + bornes robustes (1 % de masse écarté de chaque côté).

    Le max est relevé au niveau du min si l'écrêtage se croise
    (histogramme concentré sur une seule valeur).
    """
    _check_pixels(pixels)
    brightness = _brightness(pixels)
    total = brightness.size
    if total == 0:
        return BrightnessStats(avg_brightness=0.0, min_brightness=0, max_brightness=255)

    histogram = np.bincount(np.rint(brightness).astype(np.int64).ravel(), minlength=256)
    cumulative = np.cumsum(histogram)

    min_brightness = int(np.argmax(cumulative > total * CLIP_FRACTION))
    below_top = np.nonzero(cumulative < total * (1 - CLIP_FRACTION))[0]
    max_brightness = int(below_top[-1]) if below_top.size else 255
    max_brightness = max(max_brightness, min_brightness)

    return BrightnessStats(
        avg_brightness=float(brightness.mean()),
        min_brightness=min_brightness,
        max_brightness=max_brightness,
    )


def _apply_contrast(rgb: np.ndarray, contrast: float) -> np.ndarray:
    factor = contrast_factor(contrast)
    return np.clip(factor * (rgb - 128) + 128, 0, 255)


def enhance_pixels(pixels: np.ndarray) -> np.ndarray:
    """
    Améliore une image pour l'OCR de jaquettes (souvent sombres, texte gris sur noir).

    Entrée/sortie : tableau uint8 HxWx3 ou HxWx4, l'alpha n'est pas modifié.
    Chaque pixel est traité indépendamment, seules les statistiques globales
    (histogramme, moyenne) sont partagées.
    """
    _check_pixels(pixels)
    stats = compute_brightness_stats(pixels)

    rgb = pixels[..., :3].astype(np.float64)
    original = _brightness(pixels)[..., np.newaxis]

    if stats.is_dark:
        span = (stats.max_brightness - stats.min_brightness) or 1
        normalized = np.clip((original - stats.min_brightness) / span, 0.0, 1.0)
        target = np.power(normalized, DARK_GAMMA) * 255
        ratio = target / np.maximum(original, 1)
        rgb = np.clip(rgb * ratio, 0, 255)

        rgb = _apply_contrast(rgb, DARK_CONTRAST)

        low, high = MIDTONE_RANGE
        midtones = (original > low) & (original < high)
        rgb = np.where(midtones, np.clip(rgb + MIDTONE_BOOST, 0, 255), rgb)
        edge_boost = DARK_EDGE_BOOST
        below_min = original < stats.min_brightness
    else:
        rgb = _apply_contrast(rgb, LIGHT_CONTRAST)
        edge_boost = LIGHT_EDGE_BOOST
        below_min = np.zeros_like(original, dtype=bool)

    diff = np.abs(original - stats.avg_brightness)
    rgb = np.where(diff > EDGE_THRESHOLD, np.clip(rgb + diff * edge_boost, 0, 255), rgb)
    rgb = np.where(below_min, 0, rgb)

    result = pixels.copy()
    result[..., :3] = np.rint(rgb).astype(np.uint8)

    logger.debug(
        "enhance_pixels: %dx%d, moyenne=%.1f, min=%d, max=%d, image %s.",
        pixels.shape[1],
        pixels.shape[0],
        stats.avg_brightness,
        stats.min_brightness,
        stats.max_brightness,
        "sombre" if stats.is_dark else "claire",
    )
    return result
