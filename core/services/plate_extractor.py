"""Regex-based plate extraction from recognized text.

Two plate grammars are tried in fixed precedence: the current two-letter,
three-digit, two-letter format first, then the legacy three-letter,
three-digit format. When neither matches, the first recognized block is
reduced to its uppercase letters and digits as a best-effort guess.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
import re

from loguru import logger

from core.services.interfaces import RecognitionResult, Recognizer

# Precedence order matters: the legacy shape also matches inside noise.
PLATE_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("current", re.compile(r"[A-Z]{2}\s*[0-9]{3}\s*[A-Z]{2}")),
    ("legacy", re.compile(r"[A-Z]{3}\s*[0-9]{3}")),
)

_WHITESPACE = re.compile(r"\s")
_NOT_PLATE_CHAR = re.compile(r"[^A-Z0-9]")


class PlateExtractor:
    """Turn raw recognizer output into a plate identifier."""

    def __init__(self, recognizer: Recognizer | None = None) -> None:
        self._recognizer = recognizer

    def extract(self, raw_text: str, text_blocks: Sequence[str]) -> str | None:
        """Return the best plate guess for one image, or None.

        Args:
            raw_text: Full recognized text in original casing.
            text_blocks: Segment texts in the recognizer's layout order.

        Returns:
            The whitespace-free plate of the first grammar that matches; else
            the first block stripped to `[A-Z0-9]` (possibly empty); else None
            when there are no blocks.
        """
        upper = (raw_text or "").upper()
        for name, pattern in PLATE_PATTERNS:
            match = pattern.search(upper)
            if match:
                plate = _WHITESPACE.sub("", match.group(0))
                logger.debug("Plate matched {} grammar: {}", name, plate)
                return plate

        if text_blocks:
            return _NOT_PLATE_CHAR.sub("", text_blocks[0] or "")
        return None

    def extract_result(self, result: RecognitionResult) -> str | None:
        """Run `extract` on a structured recognizer result."""
        return self.extract(result.text, [b.text for b in result.blocks])

    def read_plate(self, image_path: str | Path) -> str | None:
        """Recognize `image_path` and extract its plate.

        Recognition errors are logged and degrade to "no plate".
        """
        if self._recognizer is None:
            logger.warning("No recognizer configured; skipping plate read for {}", image_path)
            return None
        try:
            result = self._recognizer.recognize(image_path)
        except Exception as ex:  # pylint: disable=broad-exception-caught
            logger.error("Recognition failed for {}: {}", image_path, ex)
            return None
        logger.info("Raw text recognized in {}: {!r}", image_path, result.text)
        return self.extract_result(result)
