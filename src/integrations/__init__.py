"""Integrations — collaborator'ы: record store, мессенджер и репозитории поверх них."""

from .discord_gateway import DiscordMessagingGateway
from .discord_interactions import InteractionSignatureVerifier, parse_button_interaction
from .external_sales import ExternalSalesRepository
from .fields import EMPTY, FieldKind, FieldValue, SingleSelect, encode_fields, parse_field
from .inventory import InventoryLinkError, InventoryRepository
from .messaging import (
    ApprovalEventRouter,
    ChannelNotFoundError,
    MessagingError,
    MessagingGateway,
)
from .offer_log import OfferMessageLog
from .record_store import (
    AirtableRecordStore,
    Record,
    RecordNotFoundError,
    RecordStore,
    RecordStoreError,
    UnsupportedFieldShapeError,
    formula_equals,
)
from .sales import SaleDraft, SalesRepository

__all__ = [
    # Fields
    "EMPTY",
    "FieldKind",
    "FieldValue",
    "SingleSelect",
    "encode_fields",
    "parse_field",
    # Record store
    "AirtableRecordStore",
    "Record",
    "RecordStore",
    "RecordStoreError",
    "RecordNotFoundError",
    "UnsupportedFieldShapeError",
    "formula_equals",
    # Messaging
    "ApprovalEventRouter",
    "ChannelNotFoundError",
    "DiscordMessagingGateway",
    "InteractionSignatureVerifier",
    "MessagingError",
    "MessagingGateway",
    "parse_button_interaction",
    # Repositories
    "ExternalSalesRepository",
    "InventoryLinkError",
    "InventoryRepository",
    "OfferMessageLog",
    "SaleDraft",
    "SalesRepository",
]
