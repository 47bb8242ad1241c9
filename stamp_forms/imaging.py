from __future__ import annotations

import webbrowser
from pathlib import Path

import cv2
import numpy as np
from PIL import Image

from stamp_forms.config import MARK, MAX_SAMPLE, ConfigError


def luminance16(img: Image.Image) -> tuple[np.ndarray, np.ndarray]:
    """
    Decode any Pillow image into (16-bit gray, visible mask).

    - 16-bit grayscale files ("I;16" and friends, "I") are kept at full depth
    - everything else goes through RGBA and gets the usual luma weights,
      then scaled 0..255 -> 0..65535 (x257, so 255 lands exactly on 65535)
    - visible = alpha > 0 (always True for images without alpha)
    """
    if img.mode.startswith("I;16") or img.mode == "I":
        gray = np.clip(np.array(img, dtype=np.int64), 0, MAX_SAMPLE).astype(np.uint16)
        return gray, np.ones(gray.shape, dtype=bool)

    arr = np.array(img.convert("RGBA"), dtype=np.uint8)
    rgb = arr[:, :, :3].astype(np.float64)
    a = arr[:, :, 3]

    gray8 = (0.299 * rgb[:, :, 0] + 0.587 * rgb[:, :, 1] + 0.114 * rgb[:, :, 2]).astype(np.uint8)
    gray = gray8.astype(np.uint16) * 257
    return gray, a > 0


def threshold_to_marks(gray: np.ndarray, visible: np.ndarray, threshold: int = 0) -> np.ndarray:
    """
    Turn a 16-bit gray image into a clean mark grid:
    visible AND gray <= threshold => MARK (0), everything else => MAX_SAMPLE.
    """
    if not 0 <= threshold < MAX_SAMPLE:
        raise ConfigError(f"threshold must be in [0, {MAX_SAMPLE}), got {threshold!r}")
    out = np.full(gray.shape, MAX_SAMPLE, dtype=np.uint16)
    out[visible & (gray <= threshold)] = MARK
    return out


def load_mark_grid(path: Path, threshold: int = 0) -> np.ndarray:
    """
    Read the black/white input and return the uint16 mark grid the stages eat.

    Fully transparent pixels count as background, no matter their color.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Input image not found: {path.resolve()}")
    with Image.open(path) as img:
        gray, visible = luminance16(img)
    return threshold_to_marks(gray, visible, threshold)


def save_grid(path: Path, grid: np.ndarray, dpi: float) -> Path:
    """
    Write a uint16 grid as a 16-bit grayscale PNG, with DPI metadata so the
    physical size survives into CAM.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    data = np.ascontiguousarray(grid, dtype=np.uint16)
    Image.fromarray(data).save(path, format="PNG", dpi=(dpi, dpi))
    return path


def mirror_horizontal(grid: np.ndarray) -> np.ndarray:
    """Left/right flip. The punch is used from the other face of the sheet."""
    return cv2.flip(np.ascontiguousarray(grid), 1)


def invert(grid: np.ndarray) -> np.ndarray:
    """0 <-> MAX_SAMPLE. For machines that want "white = deep"."""
    return cv2.bitwise_not(np.ascontiguousarray(grid, dtype=np.uint16))


def output_paths(input_path: Path, output_dir: Path | None = None) -> tuple[Path, Path]:
    """<stem>-negative.png and <stem>-positive.png next to the input (or in output_dir)."""
    input_path = Path(input_path)
    out_dir = Path(output_dir) if output_dir is not None else input_path.parent
    stem = input_path.stem.lower()
    return out_dir / f"{stem}-negative.png", out_dir / f"{stem}-positive.png"


def open_file(path: Path) -> None:
    """
    Open a file in the default system viewer.
    This uses a file:// URI so it works reliably on Windows.
    """
    webbrowser.open(Path(path).resolve().as_uri())
