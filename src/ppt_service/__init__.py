"""
PPT to PDF conversion service package.

This module provides a FastAPI application exposing the `/convert`,
`/convert-multiple` and `/download/{filename}` endpoints plus a static
upload page. Start it with the `ppt-service` console script.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
