"""
Decoding of aggregator-built Solana transactions.

The transaction library is heavy and only needed once a user actually swaps,
so it is imported lazily, once per process. Concurrent first callers share a
single in-flight load.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import importlib
import logging
from types import ModuleType
from typing import Any, Optional, Union

from .errors import SwapFailed


logger = logging.getLogger(__name__)

TRANSACTION_MODULE = "solders.transaction"


class _NotLoaded:
    """Marker returned while the transaction library has not been imported yet."""

    _instance: Optional["_NotLoaded"] = None

    def __new__(cls) -> "_NotLoaded":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NOT_LOADED"


NOT_LOADED = _NotLoaded()

_transaction_module: Optional[ModuleType] = None
_load_task: Optional[asyncio.Task] = None


class TransactionDecodeError(SwapFailed):
    """The aggregator returned a payload that is not a valid transaction."""

    default_message = "Could not decode swap transaction"


class TransactionLibraryUnavailable(SwapFailed):
    """The Solana transaction library could not be imported."""

    default_message = "Failed to load Solana transaction library"


def peek_transaction_module() -> Union[ModuleType, _NotLoaded]:
    """Return the loaded transaction module, or NOT_LOADED without triggering a load."""

    return _transaction_module if _transaction_module is not None else NOT_LOADED


async def load_transaction_module() -> ModuleType:
    """Import the transaction library once; later and concurrent calls reuse it."""

    global _load_task

    if _transaction_module is not None:
        return _transaction_module

    task = _load_task
    if task is None:
        task = asyncio.create_task(_import_transaction_module(), name="load-solders")
        _load_task = task

    try:
        return await asyncio.shield(task)
    except ImportError as exc:
        raise TransactionLibraryUnavailable() from exc
    finally:
        # A failed load is forgotten so the next swap can try again
        if task.done() and _load_task is task and _transaction_module is None:
            _load_task = None


async def _import_transaction_module() -> ModuleType:
    global _transaction_module
    module = await asyncio.to_thread(importlib.import_module, TRANSACTION_MODULE)
    _transaction_module = module
    logger.debug("Loaded %s", TRANSACTION_MODULE)
    return module


def reset_transaction_module() -> None:
    """Forget the loaded module (used by tests)."""

    global _transaction_module, _load_task
    _transaction_module = None
    _load_task = None


class TransactionCodec:
    """Turns the aggregator's base64 payload into a signable transaction."""

    async def decode(self, payload: str) -> Any:
        try:
            raw = base64.b64decode(payload, validate=True)
        except (binascii.Error, TypeError, ValueError) as exc:
            raise TransactionDecodeError("Swap transaction is not valid base64") from exc
        if not raw:
            raise TransactionDecodeError("Swap transaction is empty")

        module = await load_transaction_module()
        try:
            return module.VersionedTransaction.from_bytes(raw)
        except Exception as exc:  # noqa: BLE001
            raise TransactionDecodeError(f"Could not decode swap transaction: {exc}") from exc
