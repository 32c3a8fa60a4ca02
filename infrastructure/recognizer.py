"""Text recognition backed by Tesseract.

Pillow decodes the photo (with EXIF orientation applied and HEIC support when
pillow-heif is installed); pytesseract returns word boxes that are regrouped
into blocks in Tesseract's layout order.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from PIL import Image, ImageOps, UnidentifiedImageError
from loguru import logger
import pytesseract

from core.errors import RecognitionFailure
from core.services.interfaces import RecognitionResult, TextBlock
from infrastructure.utils import PIL_HEIF_AVAILABLE


def blocks_from_data(data: dict[str, list[Any]]) -> list[TextBlock]:
    """Group `image_to_data` words into blocks ordered by block number."""
    words_by_block: dict[tuple[int, int], list[str]] = {}
    texts = data.get("text", [])
    pages = data.get("page_num", [1] * len(texts))
    blocks = data.get("block_num", [0] * len(texts))
    for page, block, word in zip(pages, blocks, texts):
        word = str(word or "").strip()
        if not word:
            continue
        words_by_block.setdefault((int(page), int(block)), []).append(word)
    return [TextBlock(text=" ".join(words)) for _, words in sorted(words_by_block.items())]


class TesseractRecognizer:
    """Recognizer collaborator using the local Tesseract binary."""

    def __init__(
        self,
        tesseract_cmd: str | None = None,
        lang: str = "eng",
        config: str = "--oem 3 --psm 11",
    ) -> None:
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self._lang = lang
        self._config = config
        logger.debug("Tesseract ready (lang={}, HEIF support: {})", lang, PIL_HEIF_AVAILABLE)

    def recognize(self, image_path: str | Path) -> RecognitionResult:
        """Return the recognized text and blocks of `image_path`.

        Raises:
            RecognitionFailure: The image cannot be decoded or Tesseract fails.
        """
        try:
            with Image.open(image_path) as im:
                im = ImageOps.exif_transpose(im)
                rgb = im.convert("RGB")
            data = pytesseract.image_to_data(
                rgb,
                lang=self._lang,
                config=self._config,
                output_type=pytesseract.Output.DICT,
            )
        except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError) as ex:
            raise RecognitionFailure(f"Tesseract failed on {image_path}: {ex}") from ex
        except (UnidentifiedImageError, OSError, ValueError) as ex:
            raise RecognitionFailure(f"Cannot read image {image_path}: {ex}") from ex

        blocks = blocks_from_data(data)
        text = "\n".join(b.text for b in blocks)
        logger.debug("Recognized {} block(s) in {}", len(blocks), image_path)
        return RecognitionResult(text=text, blocks=blocks)
