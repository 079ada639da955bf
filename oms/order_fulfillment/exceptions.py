"""
Custom exceptions for the order fulfillment workflow.

Every exception carries a stable machine-readable code and the HTTP status
the API layer renders it with.
"""

from typing import Dict, Any


class BusinessException(Exception):
    """Base exception for business logic errors."""

    status_code = 400

    def __init__(self, message: str, code: str = "BUSINESS_ERROR", details: Dict[str, Any] = None):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)


class ValidationException(BusinessException):
    """Raised when data validation fails."""

    def __init__(self, message: str, field_errors: Dict[str, Any] = None, code: str = "VALIDATION_ERROR"):
        super().__init__(message, code, field_errors or {})


class InvalidQuantityException(ValidationException):
    """Raised when a quantity is outside the range allowed for the operation."""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(message, details, code="INVALID_QUANTITY")


class InvalidTransitionException(BusinessException):
    """Raised when attempting an invalid workflow transition."""

    def __init__(self, current_status: str, attempted_status: str, entity_type: str = "Order"):
        message = f"Invalid transition for {entity_type}: cannot move from {current_status} to {attempted_status}"
        super().__init__(message, "INVALID_TRANSITION", {
            "current_status": current_status,
            "attempted_status": attempted_status,
            "entity_type": entity_type
        })


class NotFoundOrForbiddenException(BusinessException):
    """
    Raised when an entity does not exist or the caller may not act on it.

    Both cases share one error so a vendor cannot tell whether another vendor's record exists.
    """

    status_code = 404

    def __init__(self, entity_type: str, entity_id=None):
        message = f"{entity_type} not found or access denied"
        super().__init__(message, "NOT_FOUND_OR_FORBIDDEN", {
            "entity_type": entity_type,
            "entity_id": str(entity_id) if entity_id is not None else None,
        })


class ConflictException(BusinessException):
    """Raised when the current state of a record forbids the operation."""

    status_code = 409

    def __init__(self, message: str, code: str = "CONFLICT", details: Dict[str, Any] = None):
        super().__init__(message, code, details)


class AlreadyProcessedException(ConflictException):
    """Raised when a vendor acts on an assignment that has already been resolved."""

    def __init__(self, assignment_id, current_status: str):
        super().__init__(
            "Assignment has already been processed",
            "ALREADY_PROCESSED",
            {"assignment_id": str(assignment_id), "current_status": current_status}
        )


class OrderLockedException(ConflictException):
    """Raised when an order can no longer be edited or deleted."""

    def __init__(self, order_number: str, reason: str):
        super().__init__(
            f"Order {order_number} is locked: {reason}",
            "ORDER_LOCKED",
            {"order_number": order_number, "reason": reason}
        )


class DuplicateOrderNumberException(ConflictException):
    """Raised when an order number is already taken."""

    def __init__(self, order_number: str):
        super().__init__(
            f"Order number {order_number} already exists",
            "DUPLICATE_ORDER_NUMBER",
            {"order_number": order_number}
        )


class AssignmentAlreadyDispatchedException(ConflictException):
    """Raised when an assignment already belongs to an active dispatch."""

    def __init__(self, assignment_id, dispatch_id):
        super().__init__(
            f"Assignment {assignment_id} already has an active dispatch",
            "ASSIGNMENT_ALREADY_DISPATCHED",
            {"assignment_id": str(assignment_id), "dispatch_id": str(dispatch_id)}
        )


class GrnAlreadyExistsException(ConflictException):
    """Raised when a goods receipt has already been recorded for a dispatch."""

    def __init__(self, dispatch_id, grn_number: str):
        super().__init__(
            f"GRN {grn_number} already exists for this dispatch",
            "GRN_ALREADY_EXISTS",
            {"dispatch_id": str(dispatch_id), "grn_number": grn_number}
        )


class EligibilityException(BusinessException):
    """Raised when a party is not eligible for the requested operation."""

    status_code = 422

    def __init__(self, message: str, code: str = "ELIGIBILITY_ERROR", details: Dict[str, Any] = None):
        super().__init__(message, code, details)


class VendorNotEligibleException(EligibilityException):
    """Raised when a vendor is missing, inactive or unverified."""

    def __init__(self, vendor_id, reason: str):
        super().__init__(
            f"Vendor is not eligible for assignment: {reason}",
            "VENDOR_NOT_ELIGIBLE",
            {"vendor_id": str(vendor_id), "reason": reason}
        )


class ConcurrencyException(BusinessException):
    """
    Raised when the database aborts a transaction because of contention.

    The operation had no effect and can be retried as is.
    """

    status_code = 409

    def __init__(self, message: str = "The operation conflicted with a concurrent update, please retry",
                 details: Dict[str, Any] = None):
        details = dict(details or {})
        details.setdefault("retryable", True)
        super().__init__(message, "CONCURRENCY_CONFLICT", details)


class InternalErrorException(BusinessException):
    """Raised for unexpected failures."""

    status_code = 500

    def __init__(self, message: str = "An unexpected error occurred", details: Dict[str, Any] = None):
        super().__init__(message, "INTERNAL_ERROR", details)
