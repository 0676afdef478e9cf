"""Document analysis client.

Uploads a medical report image to the analysis endpoint and validates the
structured result.
"""

import logging
import mimetypes
from pathlib import Path

import httpx
from pydantic import ValidationError

from health_chat.config import ClientConfig, get_client_config
from health_chat.models.schemas import AnalysisResult

logger = logging.getLogger(__name__)

# Constants
MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB
ANALYSIS_FAILED_MESSAGE = "Failed to analyze the image. Please try again."


class DocumentAnalysisError(Exception):
    """Raised when a document cannot be analyzed."""

    pass


def _validate_upload(content: bytes, content_type: str | None) -> None:
    """Validate file content before upload.

    Args:
        content: Raw bytes of the file.
        content_type: MIME type of the file.

    Raises:
        DocumentAnalysisError: If validation fails.
    """
    if not content_type or not content_type.startswith("image/"):
        raise DocumentAnalysisError("Please select an image file")

    if not content:
        raise DocumentAnalysisError("Empty file provided")

    if len(content) > MAX_FILE_SIZE:
        size_mb = len(content) / (1024 * 1024)
        raise DocumentAnalysisError(f"File size ({size_mb:.1f}MB) exceeds maximum allowed (10MB)")


async def analyze_document(
    content: bytes,
    filename: str,
    content_type: str | None,
    config: ClientConfig | None = None,
    client: httpx.AsyncClient | None = None,
) -> AnalysisResult:
    """Upload a document and return its analysis.

    Args:
        content: Raw bytes of the file.
        filename: Name sent with the multipart upload.
        content_type: MIME type of the file; must be an image type.
        config: Optional client configuration.
        client: Optional shared HTTP client.

    Returns:
        AnalysisResult with analysis text, conditions and recommendations.

    Raises:
        DocumentAnalysisError: If the file is rejected or the request fails.
    """
    _validate_upload(content, content_type)
    config = config or get_client_config()
    files = {"file": (filename, content, content_type)}

    try:
        if client is not None:
            response = await client.post(config.analyze_url, files=files)
        else:
            async with httpx.AsyncClient(timeout=config.timeout) as own_client:
                response = await own_client.post(config.analyze_url, files=files)
        response.raise_for_status()
        result = AnalysisResult.model_validate(response.json())
    except httpx.HTTPStatusError as e:
        logger.error(f"Analysis of {filename} failed: HTTP {e.response.status_code}")
        raise DocumentAnalysisError(ANALYSIS_FAILED_MESSAGE) from e
    except httpx.RequestError as e:
        logger.error(f"Analysis of {filename} failed: connection error {e}")
        raise DocumentAnalysisError(ANALYSIS_FAILED_MESSAGE) from e
    except (ValidationError, ValueError) as e:
        logger.error(f"Analysis of {filename} returned an invalid response: {e}")
        raise DocumentAnalysisError(ANALYSIS_FAILED_MESSAGE) from e

    logger.info(f"Analyzed {filename}: {len(result.conditions)} conditions identified")
    return result


async def analyze_file(
    path: Path | str,
    config: ClientConfig | None = None,
    client: httpx.AsyncClient | None = None,
) -> AnalysisResult:
    """Read a file from disk and analyze it.

    The content type is guessed from the file extension.
    """
    path = Path(path)
    try:
        content = path.read_bytes()
    except OSError as e:
        raise DocumentAnalysisError(f"Cannot read {path.name}: {e.strerror}") from e

    content_type, _ = mimetypes.guess_type(path.name)
    return await analyze_document(content, path.name, content_type, config, client)
