"""Helpers shared by the customer service operations."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from shopcustomers.models import ValidationError

logger = logging.getLogger(__name__)


def new_customer_error(message: str, cause: BaseException | None) -> BaseException:
    """Log a customer service failure and return the exception to raise."""
    if cause is not None:
        logger.error("CustomerService: %s: %s", message, cause)
        return cause
    logger.error("CustomerService: %s", message)
    return ValidationError(message)


class CustomerServiceUtils:
    """Common logging and validation steps for customer operations."""

    def log_customer_operation(
        self, operation: str, customer_id: str, details: Mapping[str, Any] | None
    ) -> None:
        """Log an operation on a customer, with one debug line per detail."""
        logger.info("CustomerService: %s for customer %s", operation, customer_id)
        for key, value in (details or {}).items():
            logger.debug("CustomerService: %s detail - %s: %s", operation, key, value)

    def validate_customer_id(self, customer_id: str) -> None:
        """Raise ValidationError if the customer ID is empty or too short."""
        if not customer_id:
            raise new_customer_error("customer ID cannot be empty", None)
        if len(customer_id) < 3:
            raise new_customer_error("customer ID must be at least 3 characters", None)