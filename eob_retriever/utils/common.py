# eob_retriever/utils/common.py
import os
import re
import logging
from typing import Optional

logger = logging.getLogger(__name__)

def clean_html_text(text: Optional[str]) -> str:
    """Basic cleaning of text extracted from HTML (e.g., textContent)."""
    if not text:
        return ""
    text = text.replace('\n', ' ').replace('\r', ' ').replace('\xa0', ' ')
    text = re.sub(r'\s+', ' ', text)
    return text.strip()

def sanitize_filename_component(name: str) -> str:
    """
    Replaces characters that would let a scraped value act as a path (or be
    rejected by Windows/Linux/MacOS) with '_'. Ordinary claim numbers pass
    through unchanged.
    """
    sanitized = re.sub(r'[<>:"/\\|?*\x00-\x1f]', '_', name)
    if sanitized != name:
        logger.warning(f"Replaced unsafe filename characters: '{name}' -> '{sanitized}'")
    return sanitized

def resolve_output_path(directory: str, filename: str) -> str:
    return os.path.abspath(os.path.join(directory, filename))
