"""
Tender SQL API
==============

HTTP surface for the tender question-answering pipeline.
"""

from tender_sql import __version__

__all__ = ["__version__"]
