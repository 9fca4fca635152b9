"""
Wallet session manager.

Owns the single connection to the user's wallet:
- Explicit connect with distinct failures for "no wallet", "user said no" and the rest
- Silent reconnect at startup for wallets that already trust the site
- Best-effort disconnect
- Signing on behalf of the settlement flow

Only one connect attempt is ever in flight; concurrent callers share it.
"""

import asyncio
import logging
from typing import Any, Optional

from ...config import settings
from ...providers.wallet import (
    WalletDisconnectedError,
    WalletProvider,
    WalletProviderError,
    WalletRejectedError,
)
from ..errors import (
    ProviderUnavailable,
    SwapFailed,
    SwapRejected,
    SwapWidgetError,
    UserRejected,
    WalletConnectionFailed,
)
from .models import ReconnectOutcome, WalletSession, WalletState


logger = logging.getLogger(__name__)


class WalletSessionManager:
    """Connection lifecycle for a single wallet."""

    def __init__(
        self,
        provider: Optional[WalletProvider] = None,
        *,
        install_url: Optional[str] = None,
    ):
        self._provider = provider
        self._install_url = install_url or settings.wallet_install_url
        self._state = WalletState.DISCONNECTED
        self._session: Optional[WalletSession] = None
        self._inflight: Optional[asyncio.Task] = None
        self._inflight_silent = False

    @property
    def state(self) -> WalletState:
        return self._state

    @property
    def session(self) -> Optional[WalletSession]:
        return self._session

    @property
    def address(self) -> Optional[str]:
        return self._session.address if self._session else None

    @property
    def is_connected(self) -> bool:
        return self._session is not None

    # ---------------------------
    # Connect / disconnect
    # ---------------------------
    async def connect(self) -> WalletSession:
        """
        Ask the wallet to authorize this site.

        Raises:
            ProviderUnavailable: no wallet in the environment; send the user to install_url
            UserRejected: the user closed or declined the prompt
            WalletConnectionFailed: any other wallet failure
        """
        if self._session is not None:
            return self._session
        return await self._join_connect(only_if_trusted=False)

    async def try_auto_reconnect(self) -> ReconnectOutcome:
        """Restore a previously trusted session without prompting. Never raises."""

        if self._session is not None:
            return ReconnectOutcome.RESTORED

        if not await self._provider_ready():
            logger.debug("Auto-reconnect skipped: no wallet available")
            return ReconnectOutcome.UNAVAILABLE

        try:
            await self._join_connect(only_if_trusted=True)
        except UserRejected:
            logger.debug("Auto-reconnect skipped: site not trusted by wallet")
            return ReconnectOutcome.NOT_TRUSTED
        except SwapWidgetError as exc:
            logger.info("Auto-reconnect failed: %s", exc.message)
            return ReconnectOutcome.FAILED
        return ReconnectOutcome.RESTORED

    async def disconnect(self) -> None:
        """Notify the wallet if possible, then drop the session regardless."""

        if self._inflight is not None:
            self._inflight.cancel()

        if self._provider is not None:
            try:
                await self._provider.disconnect()
            except Exception as exc:  # noqa: BLE001
                logger.warning("Wallet disconnect notification failed: %s", exc)

        self._drop_session()

    def mark_revoked(self) -> None:
        """Called when the wallet reports the connection was revoked."""

        if self._session is not None:
            logger.info("Wallet session revoked for %s", self._session.address)
        self._drop_session()

    # ---------------------------
    # Signing
    # ---------------------------
    async def sign_and_send(self, transaction: Any) -> str:
        """Have the wallet sign and broadcast a decoded transaction; returns its signature."""

        if self._session is None or self._provider is None:
            raise SwapRejected("Connect a wallet to swap")

        try:
            signature = await self._provider.sign_and_send_transaction(transaction)
        except WalletRejectedError as exc:
            raise UserRejected("Transaction cancelled in wallet") from exc
        except WalletDisconnectedError as exc:
            self.mark_revoked()
            raise SwapFailed("Wallet disconnected") from exc
        except WalletProviderError as exc:
            raise SwapFailed(str(exc) or None) from exc
        except Exception as exc:  # noqa: BLE001
            logger.warning("Unexpected wallet signing failure: %s", exc, exc_info=True)
            raise SwapFailed(str(exc) or None) from exc

        if not signature:
            raise SwapFailed("Wallet returned no signature")
        return signature

    # ---------------------------
    # Internals
    # ---------------------------
    async def _join_connect(self, *, only_if_trusted: bool) -> WalletSession:
        task = self._inflight
        if task is not None and self._inflight_silent and not only_if_trusted:
            # A silent attempt cannot prompt; ask again if it comes back untrusted
            logger.debug("Silent connect in flight, waiting before prompting")
            try:
                return await self._await_attempt(task)
            except UserRejected:
                task = self._inflight

        if task is None:
            task = asyncio.create_task(self._connect(only_if_trusted), name="wallet-connect")
            task.add_done_callback(self._connect_finished)
            self._inflight = task
            self._inflight_silent = only_if_trusted
        else:
            logger.debug("Connect already in flight, joining it")
        return await self._await_attempt(task)

    async def _await_attempt(self, task: asyncio.Task) -> WalletSession:
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            # Attempt aborted by disconnect(); our own caller was not cancelled
            if task.cancelled():
                raise WalletConnectionFailed("Connection cancelled")
            raise

    def _connect_finished(self, task: asyncio.Task) -> None:
        if self._inflight is task:
            self._inflight = None
        if not task.cancelled():
            # Mark retrieved; callers awaiting the shield re-raise it themselves
            task.exception()

    async def _connect(self, only_if_trusted: bool) -> WalletSession:
        provider = self._provider
        if provider is None or not await self._provider_ready():
            raise ProviderUnavailable(self._install_url)

        self._state = WalletState.CONNECTING
        try:
            connection = await provider.connect(only_if_trusted=only_if_trusted)
        except WalletRejectedError as exc:
            self._state = WalletState.DISCONNECTED
            raise UserRejected("Connection cancelled") from exc
        except WalletProviderError as exc:
            self._state = WalletState.DISCONNECTED
            raise WalletConnectionFailed(str(exc) or None) from exc
        except asyncio.CancelledError:
            self._state = WalletState.DISCONNECTED
            raise
        except Exception as exc:  # noqa: BLE001
            logger.warning("Unexpected wallet connect failure: %s", exc, exc_info=True)
            self._state = WalletState.DISCONNECTED
            raise WalletConnectionFailed(str(exc) or None) from exc

        if not connection.address:
            self._state = WalletState.DISCONNECTED
            raise WalletConnectionFailed("Wallet returned no address")

        self._session = WalletSession(address=connection.address, restored=only_if_trusted)
        self._state = WalletState.CONNECTED
        logger.info(
            "Wallet connected: %s%s",
            connection.address,
            " (restored)" if only_if_trusted else "",
        )
        return self._session

    async def _provider_ready(self) -> bool:
        if self._provider is None:
            return False
        try:
            return bool(await self._provider.ready())
        except Exception as exc:  # noqa: BLE001
            logger.warning("Wallet readiness check failed: %s", exc)
            return False

    def _drop_session(self) -> None:
        self._session = None
        self._state = WalletState.DISCONNECTED
