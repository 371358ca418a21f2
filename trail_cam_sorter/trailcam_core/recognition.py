"""
OCR recognition for the Trail Cam Sorter.

Wraps the Tesseract engine (through pytesseract). The composite image is
handed over as a temporary PNG that never outlives the call.
"""

import os
import tempfile
from pathlib import Path
from typing import Optional

import cv2
import numpy as np
import pytesseract

from .utils import RecognitionFailure


class TextRecognizer:
    """Runs Tesseract on a composite image and returns its raw text."""

    def __init__(
        self,
        tesseract_cmd: str = "tesseract",
        tessdata_dir: Optional[str] = None,
        lang: str = "eng",
        timeout: float = 60,
        verbose: bool = False
    ):
        self.tesseract_cmd = tesseract_cmd
        self.tessdata_dir = tessdata_dir
        self.lang = lang
        self.timeout = timeout
        self.verbose = verbose

    @property
    def config(self) -> str:
        if not self.tessdata_dir:
            return ""
        return f'--tessdata-dir "{self.tessdata_dir}"'

    def recognize(self, image: np.ndarray, source_name: str = "frame") -> str:
        """
        Recognize text in a composite image.

        Returns:
            Tesseract output, verbatim
        """
        if image is None or image.size == 0:
            raise RecognitionFailure("Nothing to recognize: empty image.")

        fd, temp_path = tempfile.mkstemp(prefix=f"{source_name}-ocr-image-", suffix=".png")
        os.close(fd)

        try:
            if not cv2.imwrite(temp_path, image):
                raise RecognitionFailure(f"Failed to write temporary image file: {temp_path}")

            text = self._run_tesseract(temp_path)
        finally:
            Path(temp_path).unlink(missing_ok=True)

        if self.verbose:
            print(f"[OCR] <OCR>\n{text.strip()}\n</OCR>")

        if not text or not text.strip():
            raise RecognitionFailure("OCR produced no text.")

        return text

    def _run_tesseract(self, image_path: str) -> str:
        # pytesseract keeps the binary path module-wide; set it per call so
        # each recognizer runs its own command
        pytesseract.pytesseract.tesseract_cmd = self.tesseract_cmd
        try:
            return pytesseract.image_to_string(
                image_path,
                lang=self.lang,
                config=self.config,
                timeout=self.timeout
            )
        except pytesseract.TesseractNotFoundError as e:
            raise RecognitionFailure(f"Tesseract not found: {self.tesseract_cmd}") from e
        except pytesseract.TesseractError as e:
            raise RecognitionFailure(f"Tesseract error: {e}") from e
        except RuntimeError as e:
            # pytesseract reports its timeout as RuntimeError
            raise RecognitionFailure(f"Tesseract failed: {e}") from e
