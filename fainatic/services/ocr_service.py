"""
Tesseract OCR wrapper for scanned statements.

Decoding, preprocessing and pytesseract are all blocking, so they run in a
worker thread. Recognition is bounded by OCR_TIMEOUT_SECONDS, with
OCR_MAX_RETRIES extra attempts on failure.
"""

import asyncio
import io
import logging
from typing import Iterable

import pytesseract
from PIL import Image, ImageFilter, ImageOps, UnidentifiedImageError

from fainatic.core.config import Settings
from fainatic.core.exceptions import FileTooLargeError, InvalidFileContentError, OCRError, ParseTimeoutError

logger = logging.getLogger(__name__)

# Assume a single uniform block of text, which suits statement tables
TESSERACT_CONFIG = "--oem 3 --psm 6"


class OCRService:
    def __init__(self, settings: Settings):
        self.settings = settings

    def load_image(self, content: bytes) -> Image.Image:
        """
        Raises:
            FileTooLargeError: the image declares more pixels than allowed
            InvalidFileContentError: the bytes are not a decodable image
        """
        try:
            image = Image.open(io.BytesIO(content))
            self.check_dimensions(image)
            image.load()
        except Image.DecompressionBombError as e:
            raise FileTooLargeError("Image dimensions are too large", details=str(e))
        except (UnidentifiedImageError, OSError) as e:
            raise InvalidFileContentError("Could not decode image", details=str(e))
        return image

    def check_dimensions(self, image: Image.Image) -> None:
        pixels = image.width * image.height
        if pixels > self.settings.OCR_MAX_IMAGE_PIXELS:
            raise FileTooLargeError(
                "Image dimensions are too large",
                details=f"{image.width}x{image.height} exceeds {self.settings.OCR_MAX_IMAGE_PIXELS} pixels",
            )

    @staticmethod
    def preprocess(image: Image.Image) -> Image.Image:
        """Greyscale, stretch contrast and sharpen before recognition"""
        image = ImageOps.exif_transpose(image)
        image = image.convert("L")
        image = ImageOps.autocontrast(image)
        return image.filter(ImageFilter.SHARPEN)

    def _prepare(self, image: Image.Image) -> Image.Image:
        self.check_dimensions(image)
        return self.preprocess(image)

    def _recognize(self, image: Image.Image) -> str:
        return pytesseract.image_to_string(
            image,
            lang=self.settings.OCR_LANGUAGE,
            config=TESSERACT_CONFIG,
            timeout=self.settings.OCR_TIMEOUT_SECONDS,
        )

    async def image_to_text(self, image: Image.Image) -> str:
        """
        Recognize one image.

        Raises:
            ParseTimeoutError: every attempt timed out
            OCRError: tesseract is missing or kept failing
        """
        prepared = await asyncio.to_thread(self._prepare, image)
        attempts = self.settings.OCR_MAX_RETRIES + 1
        timed_out = False
        last_error = None

        for attempt in range(1, attempts + 1):
            try:
                return await asyncio.wait_for(
                    asyncio.to_thread(self._recognize, prepared),
                    timeout=self.settings.OCR_TIMEOUT_SECONDS,
                )
            except pytesseract.TesseractNotFoundError as e:
                raise OCRError("OCR engine is not available", details=str(e))
            except asyncio.TimeoutError:
                timed_out, last_error = True, None
                logger.warning(f"OCR attempt {attempt}/{attempts} timed out")
            except RuntimeError as e:
                # pytesseract reports its own subprocess timeout as a plain RuntimeError
                if "timeout" in str(e).lower():
                    timed_out, last_error = True, None
                else:
                    timed_out, last_error = False, e
                logger.warning(f"OCR attempt {attempt}/{attempts} failed: {e}")

        if timed_out:
            raise ParseTimeoutError(
                "OCR timed out",
                details=f"{attempts} attempts of {self.settings.OCR_TIMEOUT_SECONDS}s each",
            )
        raise OCRError("OCR failed", details=str(last_error))

    async def extract_text(self, content: bytes) -> str:
        """OCR text of an uploaded image file"""
        image = await asyncio.to_thread(self.load_image, content)
        text = await self.image_to_text(image)
        logger.info(f"OCR recognized {len(text)} chars from {image.width}x{image.height} image")
        return text

    async def extract_pages(self, pages: Iterable[Image.Image]) -> str:
        """OCR text of rasterized PDF pages, one page after another"""
        texts = []
        for number, page in enumerate(pages, 1):
            page_text = await self.image_to_text(page)
            logger.debug(f"OCR page {number}: {len(page_text)} chars")
            texts.append(page_text)
        return "\n".join(texts)
