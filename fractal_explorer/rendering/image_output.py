"""
Image export for rendered fractals.

Writes RGB images (PNG, TIFF, JPEG) with the render parameters embedded as
metadata, and raw pixel value arrays as NumPy files.
"""

import numpy as np
from typing import Any, Dict, List, Optional
from pathlib import Path
from dataclasses import dataclass, asdict, field
import json
import logging
from datetime import datetime

from PIL import Image, PngImagePlugin

logger = logging.getLogger(__name__)


@dataclass
class RenderMetadata:
    """Parameters of a fractal render, embedded in exported images."""

    fractal_type: str
    centre: List[float]
    zoom_factor: float
    resolution: List[int]
    max_iterations: int
    stopping_radius: Optional[float]
    coloring_algorithm: str
    image_scaling: str
    colour_lut: str
    render_time_seconds: float = 0.0
    info_lines: List[str] = field(default_factory=list)
    timestamp: str = ""
    software_version: str = ""

    def __post_init__(self):
        if not self.timestamp:
            self.timestamp = datetime.now().isoformat()
        if not self.software_version:
            from .. import __version__
            self.software_version = __version__

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RenderMetadata':
        return cls(**data)

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    @classmethod
    def from_json(cls, json_str: str) -> 'RenderMetadata':
        return cls.from_dict(json.loads(json_str))


class ImageExporter:
    """Image export with metadata support."""

    def __init__(self):
        self.supported_formats = {
            '.png': self._save_png,
            '.tiff': self._save_tiff,
            '.tif': self._save_tiff,
            '.jpg': self._save_jpeg,
            '.jpeg': self._save_jpeg,
        }

    def save_image(self, image_array: np.ndarray, filepath: Path,
                   metadata: Optional[RenderMetadata] = None, quality: int = 95) -> Path:
        """
        Save an RGB image array to file.

        Args:
            image_array: RGB image array (height, width, 3) with values 0-1
            filepath: Output file path; the suffix selects the format
            metadata: Render metadata to embed
            quality: JPEG quality (1-100)

        Returns:
            Path of the written file
        """
        filepath = Path(filepath)
        suffix = filepath.suffix.lower()

        if suffix not in self.supported_formats:
            supported = ', '.join(self.supported_formats.keys())
            raise ValueError(f"Unsupported format '{suffix}'. Supported: {supported}")

        pil_image = Image.fromarray(self._prepare_image_array(image_array))
        self.supported_formats[suffix](pil_image, filepath, metadata, quality)

        logger.info(f"Saved image: {filepath} ({pil_image.size[0]}x{pil_image.size[1]})")
        return filepath

    def _prepare_image_array(self, image_array: np.ndarray) -> np.ndarray:
        """Validate an RGB array and convert it to 8 bits per channel."""
        if image_array.ndim != 3 or image_array.shape[2] != 3:
            raise ValueError(f"Expected RGB image array (H, W, 3), got {image_array.shape}")

        if image_array.dtype != np.uint8:
            image_array = np.clip(image_array, 0.0, 1.0)
            image_array = np.round(image_array * 255).astype(np.uint8)
        return np.ascontiguousarray(image_array)

    def _save_png(self, pil_image: Image.Image, filepath: Path,
                  metadata: Optional[RenderMetadata], quality: int) -> None:
        pnginfo = PngImagePlugin.PngInfo()
        if metadata:
            pnginfo.add_text("Title", f"Fractal: {metadata.fractal_type}")
            pnginfo.add_text("Software", f"fractal-explorer v{metadata.software_version}")
            pnginfo.add_text("Creation Time", metadata.timestamp)
            pnginfo.add_itxt("FractalMetadata", metadata.to_json())
        pil_image.save(filepath, "PNG", pnginfo=pnginfo)

    def _save_tiff(self, pil_image: Image.Image, filepath: Path,
                   metadata: Optional[RenderMetadata], quality: int) -> None:
        save_kwargs = {}
        if metadata:
            # 270 is the TIFF ImageDescription tag
            save_kwargs['tiffinfo'] = {270: json.dumps(metadata.to_dict())}
        pil_image.save(filepath, "TIFF", **save_kwargs)

    def _save_jpeg(self, pil_image: Image.Image, filepath: Path,
                   metadata: Optional[RenderMetadata], quality: int) -> None:
        if not 1 <= quality <= 100:
            raise ValueError(f"JPEG quality must be between 1 and 100, got {quality}")
        pil_image.save(filepath, "JPEG", quality=quality)

    def save_raw_data(self, values: np.ndarray, filepath: Path,
                      metadata: Optional[RenderMetadata] = None) -> Path:
        """
        Save raw pixel values as a .npy file, with metadata in a .json sidecar.

        Args:
            values: Raw pixel values
            filepath: Output path of the array
            metadata: Optional render metadata
        """
        filepath = Path(filepath)
        np.save(filepath, values)
        if metadata:
            filepath.with_suffix('.json').write_text(metadata.to_json(), encoding='utf-8')
        logger.info(f"Saved raw pixel values: {filepath}")
        return filepath

    def read_metadata(self, filepath: Path) -> Optional[RenderMetadata]:
        """Read render metadata back from a PNG written by save_image."""
        with Image.open(filepath) as image:
            text = getattr(image, 'text', {}) or {}
            if 'FractalMetadata' not in text:
                return None
            return RenderMetadata.from_json(text['FractalMetadata'])
