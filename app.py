"""
Token service factory.
create_token_issuer() is the single entry point for building the issuer.
"""

from __future__ import annotations

from typing import Optional

from pymongo import MongoClient
from pymongo.collection import Collection

from config import AppSettings
from infrastructure.token_store.mongo import MongoTokenStore
from services.token_issuer import TokenIssuer
from shared.logging import configure_logging, get_logger


def create_token_issuer(
    settings: Optional[AppSettings] = None,
    *,
    collection: Optional[Collection] = None,
) -> TokenIssuer:
    """Create a TokenIssuer backed by MongoDB.

    Pass *collection* to reuse an existing (or mocked) collection instead of
    opening a new MongoClient from ``settings.db.mongodb_uri``.
    """
    if settings is None:
        settings = AppSettings()

    configure_logging(settings.logging)
    log = get_logger(__name__)

    if collection is None:
        client: MongoClient = MongoClient(settings.db.mongodb_uri)
        collection = client[settings.db.db_name][settings.db.api_tokens_collection]

    store = MongoTokenStore(collection)
    store.ensure_indexes()

    log.info(
        "token_issuer_ready",
        env=settings.env,
        collection=collection.name,
        max_active=settings.tokens.api_token_max_active,
    )
    return TokenIssuer(store, settings.tokens)
