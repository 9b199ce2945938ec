# infrastructure/image_codec.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from io import BytesIO
from typing import Optional

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from domain.image_enhancer import enhance_pixels
from domain.scan_errors import ImageDecodeError
from domain.scan_models import EnhancedImage, RawImage

logger = logging.getLogger(__name__)

_FORMAT_TO_MIME = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "WEBP": "image/webp",
    "BMP": "image/bmp",
    "GIF": "image/gif",
    "TIFF": "image/tiff",
}
# Formats que Pillow sait réécrire sans surprise ; le reste repart en PNG
_WRITABLE_FORMATS = {"JPEG", "PNG", "WEBP", "BMP", "TIFF"}
JPEG_QUALITY = 95


@dataclass
class DecodedImage:
    pixels: np.ndarray
    format: str

    @property
    def has_alpha(self) -> bool:
        return self.pixels.shape[-1] == 4

    @property
    def mime_type(self) -> str:
        return _FORMAT_TO_MIME.get(self.format, "image/png")


def decode_image(data: bytes) -> DecodedImage:
    """
    Décode des octets image en tableau RGB/RGBA.

    L'orientation EXIF est appliquée (photos prises au téléphone).
    Lève ImageDecodeError si Pillow ne reconnaît pas l'image.
    """
    if not data:
        raise ImageDecodeError("Image vide : aucun octet reçu.")

    try:
        with Image.open(BytesIO(data)) as img:
            source_format = (img.format or "PNG").upper()
            img.load()
            oriented = ImageOps.exif_transpose(img)
            has_alpha = "A" in oriented.getbands() or "transparency" in oriented.info
            converted = oriented.convert("RGBA" if has_alpha else "RGB")
            pixels = np.array(converted, dtype=np.uint8)
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        logger.warning("Décodage image impossible: %s", exc)
        raise ImageDecodeError(f"Image illisible: {exc}") from exc

    if source_format not in _WRITABLE_FORMATS:
        logger.debug("Format %s non réécrit tel quel, sortie en PNG.", source_format)
        source_format = "PNG"
    if source_format == "JPEG" and pixels.shape[-1] == 4:
        source_format = "PNG"

    logger.debug(
        "Image décodée (%s, %dx%d, alpha=%s).",
        source_format,
        pixels.shape[1],
        pixels.shape[0],
        pixels.shape[-1] == 4,
    )
    return DecodedImage(pixels=pixels, format=source_format)


def encode_image(decoded: DecodedImage, fmt: Optional[str] = None) -> bytes:
    """Réencode un tableau de pixels dans le format d'origine (JPEG qualité 95)."""
    target = (fmt or decoded.format).upper()
    # HxWx3 -> RGB, HxWx4 -> RGBA
    image = Image.fromarray(np.ascontiguousarray(decoded.pixels, dtype=np.uint8))

    save_kwargs = {}
    if target == "JPEG":
        if decoded.has_alpha:
            image = image.convert("RGB")
        save_kwargs["quality"] = JPEG_QUALITY

    buffer = BytesIO()
    image.save(buffer, format=target, **save_kwargs)
    return buffer.getvalue()


def enhance_image(raw: RawImage) -> EnhancedImage:
    """Décode, améliore puis réencode une image pour l'OCR."""
    decoded = decode_image(raw.data)
    enhanced = DecodedImage(pixels=enhance_pixels(decoded.pixels), format=decoded.format)
    data = encode_image(enhanced)
    logger.info(
        "Image améliorée pour l'OCR (%d octets -> %d octets, %s).",
        len(raw.data),
        len(data),
        enhanced.format,
    )
    return EnhancedImage(data=data, mime_type=enhanced.mime_type)
