"""
Contract Validation Module

Валидация входящих JSON запросов HTTP API по JSON Schema контрактам.
"""

from .validators import (
    ApprovalEventValidator,
    ContractValidator,
    DealUpdateValidator,
    DisableOffersValidator,
    ExternalOffersValidator,
    FinalizeRequestValidator,
    SchemaLoader,
    ValidationError,
    validate_approval_event,
    validate_deal_update,
    validate_disable_offers,
    validate_external_offers,
    validate_finalize_request,
)

__all__ = [
    # Classes
    "SchemaLoader",
    "ContractValidator",
    "ValidationError",
    "ExternalOffersValidator",
    "DisableOffersValidator",
    "FinalizeRequestValidator",
    "DealUpdateValidator",
    "ApprovalEventValidator",
    # Functions
    "validate_external_offers",
    "validate_disable_offers",
    "validate_finalize_request",
    "validate_deal_update",
    "validate_approval_event",
]
