"""Multi-vendor OCR dispatch, client facade and Gemini-based copy review."""

__version__ = "0.1.0"
