"""Medical report analysis uploads.

Sends a single image to the analysis endpoint and returns a typed result.
No streaming and no incremental state.
"""

from health_chat.analysis.client import (
    MAX_FILE_SIZE,
    DocumentAnalysisError,
    analyze_document,
    analyze_file,
)

__all__ = ["MAX_FILE_SIZE", "DocumentAnalysisError", "analyze_document", "analyze_file"]
