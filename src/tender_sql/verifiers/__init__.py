"""
Verifiers Module
================

Read-only gate and shape checks for model-generated SQL.
"""

from tender_sql.verifiers.base import Verifier
from tender_sql.verifiers.safety import SafetyValidator
from tender_sql.verifiers.syntax import SyntaxGuard

__all__ = [
    "Verifier",
    "SafetyValidator",
    "SyntaxGuard",
]
