"""Custom exceptions for the Nestplan projection engine.

This module provides a hierarchy of exception classes for consistent error
handling across the engine. All exceptions inherit from NestplanError,
making it easy to catch all engine-specific errors.

Example:
    try:
        result = project_household(plan, current_year=2025)
    except ProjectionError as e:
        # Snapshots before the failing year are still valid
        partial = e.completed_snapshots
        logger.error("projection_failed", year=e.year, entity_id=e.entity_id)
    except NestplanError as e:
        logger.error(f"Operation failed: {e}")
"""

from typing import Any, Optional


class NestplanError(Exception):
    """Base exception for all Nestplan engine errors.

    This is the root of the exception hierarchy. Catching this exception
    will catch all Nestplan-specific errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context.
        recoverable: Whether the error is potentially recoverable.

    Example:
        >>> raise NestplanError("Something went wrong", details={"year": 2030})
        NestplanError: Something went wrong
    """

    def __init__(
        self,
        message: str,
        *,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = False,
    ) -> None:
        """Initialize NestplanError.

        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional context about the error.
            recoverable: Whether the error is potentially recoverable through
                retry or alternative inputs. Defaults to False.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable

    def __str__(self) -> str:
        """Return string representation of the error."""
        return self.message

    def __repr__(self) -> str:
        """Return detailed representation of the error."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"details={self.details!r}, "
            f"recoverable={self.recoverable!r})"
        )


class PlanValidationError(NestplanError):
    """Error raised when a plan input is malformed.

    Raised for inputs the engine cannot work with, such as a projection
    start year after the death year or a non-positive calculator input.
    Entity-level field checks are enforced by the pydantic models and
    surface as pydantic validation errors before the engine runs.

    Attributes:
        field: The field that failed validation.
        value: The invalid value.
        constraint: The validation constraint that was violated.

    Example:
        >>> raise PlanValidationError(
        ...     "Projection starts after the death year",
        ...     field="current_year",
        ...     value=2120,
        ...     constraint="current_year <= birth_year + death_age - 1",
        ... )
        PlanValidationError: Projection starts after the death year
    """

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        constraint: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = True,
    ) -> None:
        """Initialize PlanValidationError.

        Args:
            message: Human-readable error description.
            field: The name of the field that failed validation.
            value: The invalid value.
            constraint: Description of the validation rule violated.
            details: Optional dictionary with additional context.
            recoverable: Whether the error can be fixed by user correction.
                Defaults to True since validation errors typically require
                user input correction.
        """
        super().__init__(message, details=details, recoverable=recoverable)
        self.field = field
        self.value = value
        self.constraint = constraint

        if field:
            self.details["field"] = field
        if value is not None:
            self.details["value"] = value
        if constraint:
            self.details["constraint"] = constraint


class AmortizationError(NestplanError):
    """Error raised for a degenerate amortization or payout window.

    A grace period that covers the whole debt term, or a pension payout
    window with no payment years, cannot be amortized. These are rejected
    rather than clamped.

    Attributes:
        entity_id: Identifier of the debt or pension.
        term_years: Total length of the window in years.
        grace_period: Grace period in years (debts only).

    Example:
        >>> raise AmortizationError(
        ...     "Grace period covers the whole term",
        ...     entity_id="mortgage",
        ...     term_years=5,
        ...     grace_period=5,
        ... )
        AmortizationError: Grace period covers the whole term
    """

    def __init__(
        self,
        message: str,
        *,
        entity_id: Optional[str] = None,
        term_years: Optional[int] = None,
        grace_period: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = True,
    ) -> None:
        super().__init__(message, details=details, recoverable=recoverable)
        self.entity_id = entity_id
        self.term_years = term_years
        self.grace_period = grace_period

        if entity_id:
            self.details["entity_id"] = entity_id
        if term_years is not None:
            self.details["term_years"] = term_years
        if grace_period is not None:
            self.details["grace_period"] = grace_period


class AllocationError(NestplanError):
    """Error raised when an allocation or withdrawal rule cannot be applied.

    Covers ratios that do not sum to exactly 100, targets that do not exist
    or are not active in the rule's year, and withdrawals larger than the
    source balance. Rules are never renormalized or clamped.

    Attributes:
        year: The year the rule applies to.
        rule_type: "allocation" or "withdrawal".
        target_id: The target or source entity id involved (if any).
    """

    def __init__(
        self,
        message: str,
        *,
        year: Optional[int] = None,
        rule_type: Optional[str] = None,
        target_id: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = True,
    ) -> None:
        super().__init__(message, details=details, recoverable=recoverable)
        self.year = year
        self.rule_type = rule_type
        self.target_id = target_id

        if year is not None:
            self.details["year"] = year
        if rule_type:
            self.details["rule_type"] = rule_type
        if target_id:
            self.details["target_id"] = target_id


class ConvergenceError(NestplanError):
    """Error raised when an iterative solver exceeds its iteration cap.

    The caller may retry with a wider tolerance or a higher cap, so this
    error is recoverable by default.

    Attributes:
        iterations: Number of iterations performed.
        residual: Remaining difference from the target when the cap was hit.
        tolerance: Tolerance the solver was asked to reach.

    Example:
        >>> raise ConvergenceError(
        ...     "Tax solver did not converge",
        ...     iterations=100,
        ...     residual="3.2",
        ...     tolerance="1",
        ... )
        ConvergenceError: Tax solver did not converge
    """

    def __init__(
        self,
        message: str,
        *,
        iterations: Optional[int] = None,
        residual: Optional[Any] = None,
        tolerance: Optional[Any] = None,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = True,
    ) -> None:
        super().__init__(message, details=details, recoverable=recoverable)
        self.iterations = iterations
        self.residual = residual
        self.tolerance = tolerance

        if iterations is not None:
            self.details["iterations"] = iterations
        if residual is not None:
            self.details["residual"] = str(residual)
        if tolerance is not None:
            self.details["tolerance"] = str(tolerance)


class ProjectionError(NestplanError):
    """Error raised when the year projection fold is aborted.

    Wraps the engine error that occurred while computing one year. The
    snapshots computed before the failing year are returned untouched so
    the caller can still display them.

    Attributes:
        year: The year whose computation failed.
        entity_id: The entity involved in the failure (if known).
        completed_snapshots: Snapshots computed before the failing year.
    """

    def __init__(
        self,
        message: str,
        *,
        year: int,
        entity_id: Optional[str] = None,
        completed_snapshots: Optional[list[Any]] = None,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message, details=details, recoverable=recoverable)
        self.year = year
        self.entity_id = entity_id
        self.completed_snapshots = list(completed_snapshots or [])

        self.details["year"] = year
        if entity_id:
            self.details["entity_id"] = entity_id
        self.details["completed_years"] = len(self.completed_snapshots)


class ConfigurationError(NestplanError):
    """Error raised when configuration is invalid or missing.

    Attributes:
        config_key: The configuration key that is problematic.
        expected: Description of the expected value or format.
        actual: The actual value found (if any).
    """

    def __init__(
        self,
        message: str,
        *,
        config_key: Optional[str] = None,
        expected: Optional[str] = None,
        actual: Optional[Any] = None,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message, details=details, recoverable=recoverable)
        self.config_key = config_key
        self.expected = expected
        self.actual = actual

        if config_key:
            self.details["config_key"] = config_key
        if expected:
            self.details["expected"] = expected
        if actual is not None:
            self.details["actual"] = actual


__all__ = [
    "NestplanError",
    "PlanValidationError",
    "AmortizationError",
    "AllocationError",
    "ConvergenceError",
    "ProjectionError",
    "ConfigurationError",
]
