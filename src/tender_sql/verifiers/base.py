"""
Base Verifier
=============

Abstract base class shared by the Safety Validator and the Syntax Guard.
"""

from abc import ABC, abstractmethod
from typing import Optional

from tender_sql.models import VerificationResult, VerificationStatus


class Verifier(ABC):
    """Base class for all verifiers."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique name for this verifier."""
        pass

    @abstractmethod
    def verify(self, sql: str, context: Optional[dict] = None) -> VerificationResult:
        """
        Verify the SQL against this verifier's rules.

        Args:
            sql: The SQL query to verify
            context: Additional context such as the question

        Returns:
            VerificationResult indicating pass/fail with details
        """
        pass

    def _passed(self, message: str) -> VerificationResult:
        return VerificationResult(
            verifier_name=self.name,
            status=VerificationStatus.PASSED,
            message=message,
        )

    def _failed(self, message: str, **details) -> VerificationResult:
        return VerificationResult(
            verifier_name=self.name,
            status=VerificationStatus.FAILED,
            message=message,
            details=details,
        )
