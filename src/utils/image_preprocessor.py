"""Image preprocessing for OCR on chat screenshots.

Chat screenshots fail OCR differently from photos: the text is crisp but
often small, dark-mode themes put light text on dark bubbles, and coloured
message bubbles drop contrast between text and background.  Photos of a
screen add sensor noise and a slight rotation on top.

:meth:`ScreenshotPreprocessor.build_ocr_passes` produces three variants,
each aimed at a different failure mode:

    "otsu"     : resize -> grayscale -> dark-mode invert -> CLAHE -> denoise
                 -> Otsu binarization -> deskew  (same as :meth:`prepare`)
    "adaptive" : resize -> grayscale -> dark-mode invert -> adaptive threshold
                 (uneven backgrounds, gradient bubbles)
    "gray"     : resize -> grayscale -> dark-mode invert  (no thresholding;
                 anti-aliased small fonts survive better)

Every step is also exposed on its own so tests and callers can mix them.
"""

import io

import cv2
import numpy as np
from PIL import Image

# Mean grayscale level below which a screenshot is treated as dark mode.
_DARK_MODE_MEAN = 110


class ScreenshotPreprocessor:
    """Turns a chat screenshot into a clean black-on-white image for Tesseract."""

    def build_ocr_passes(self, image: Image.Image) -> list[tuple[str, Image.Image]]:
        """Return ``(pass_name, image)`` variants, primary pass first.

        The skew angle is computed once on the Otsu pass and reused.
        """
        base = self._light_mode_gray(image)

        otsu = self.binarize_otsu(self.denoise(self.enhance_contrast_clahe(base)))
        angle = self.detect_skew_angle(otsu)

        return [
            ("otsu", self.apply_deskew(Image.fromarray(otsu), angle)),
            ("adaptive", self.apply_deskew(Image.fromarray(self.binarize_adaptive(base)), angle)),
            ("gray", self.apply_deskew(Image.fromarray(base), angle)),
        ]

    def prepare(self, image: Image.Image) -> Image.Image:
        """Run the primary (Otsu) preprocessing pipeline on a PIL image."""
        gray = self._light_mode_gray(image)
        binary = self.binarize_otsu(self.denoise(self.enhance_contrast_clahe(gray)))
        angle = self.detect_skew_angle(binary)
        return self.apply_deskew(Image.fromarray(binary), angle)

    def _light_mode_gray(self, image: Image.Image) -> np.ndarray:
        """Resized grayscale with dark-mode screenshots inverted to dark-on-light."""
        gray = self.to_grayscale(self.resize_for_ocr(image))
        if self.is_dark_mode(gray):
            gray = cv2.bitwise_not(gray)
        return gray

    def prepare_bytes(self, image_bytes: bytes) -> bytes:
        """Run :meth:`prepare` on encoded image bytes and return PNG bytes."""
        image = Image.open(io.BytesIO(image_bytes)).convert("RGB")
        prepared = self.prepare(image)
        buffer = io.BytesIO()
        prepared.save(buffer, format="PNG")
        return buffer.getvalue()

    @staticmethod
    def to_grayscale(image: Image.Image) -> np.ndarray:
        return np.array(image.convert("L"))

    @staticmethod
    def is_dark_mode(gray: np.ndarray) -> bool:
        """True when the screenshot is mostly dark (light text on dark bubbles)."""
        if gray.size == 0:
            return False
        return float(gray.mean()) < _DARK_MODE_MEAN

    @staticmethod
    def enhance_contrast_clahe(
        gray: np.ndarray,
        clip_limit: float = 2.0,
        tile_size: int = 8,
    ) -> np.ndarray:
        """Apply CLAHE to even out contrast across coloured message bubbles."""
        clahe = cv2.createCLAHE(clipLimit=clip_limit, tileGridSize=(tile_size, tile_size))
        return clahe.apply(gray)

    @staticmethod
    def denoise(gray: np.ndarray, strength: int = 10) -> np.ndarray:
        """Bilateral filter: smooths sensor noise while keeping glyph edges."""
        return cv2.bilateralFilter(gray, d=9, sigmaColor=strength * 7.5, sigmaSpace=strength * 7.5)

    @staticmethod
    def binarize_otsu(gray: np.ndarray) -> np.ndarray:
        """Binarize with Otsu's global threshold.

        Screenshot backgrounds are close to uniform, so the histogram is
        usually bimodal and a global threshold beats an adaptive one.
        """
        _, binary = cv2.threshold(gray, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)
        return binary

    @staticmethod
    def binarize_adaptive(gray: np.ndarray, block_size: int = 31, c: int = 10) -> np.ndarray:
        """Adaptive Gaussian threshold for gradient or unevenly lit backgrounds."""
        return cv2.adaptiveThreshold(
            gray,
            255,
            cv2.ADAPTIVE_THRESH_GAUSSIAN_C,
            cv2.THRESH_BINARY,
            blockSize=block_size,
            C=c,
        )

    @staticmethod
    def detect_skew_angle(gray: np.ndarray) -> float | None:
        """Median angle of near-horizontal Hough lines, or ``None`` if negligible.

        Only matters for photos of a screen; true screenshots come back
        with ``None``.
        """
        edges = cv2.Canny(gray, 50, 150, apertureSize=3)
        lines = cv2.HoughLinesP(
            edges, 1, np.pi / 180, threshold=100, minLineLength=50, maxLineGap=10
        )
        if lines is None:
            return None

        angles: list[float] = []
        for line in lines:
            x1, y1, x2, y2 = line[0]
            angle = np.degrees(np.arctan2(y2 - y1, x2 - x1))
            if abs(angle) < 45:
                angles.append(angle)

        if not angles:
            return None

        median_angle = float(np.median(angles))
        if abs(median_angle) < 0.5 or abs(median_angle) > 15:
            return None
        return median_angle

    @staticmethod
    def apply_deskew(image: Image.Image, angle: float | None) -> Image.Image:
        if angle is None:
            return image
        # White fill: the image is black text on white after binarization.
        return image.rotate(angle, resample=Image.BICUBIC, expand=True, fillcolor=255)

    @staticmethod
    def resize_for_ocr(
        image: Image.Image, max_dim: int = 3000, min_dim: int = 1600
    ) -> Image.Image:
        """Scale so the largest side lies within ``[min_dim, max_dim]``.

        Phone screenshots downsampled by chat apps often have glyphs under
        20 px tall; upscaling them is the single biggest win for Tesseract.
        """
        width, height = image.size
        largest = max(width, height)
        if largest == 0:
            return image

        if largest < min_dim:
            scale = min_dim / largest
        elif largest > max_dim:
            scale = max_dim / largest
        else:
            return image

        return image.resize((int(width * scale), int(height * scale)), Image.LANCZOS)
