"""
Web3Connection - One session against one node with one account.

The same contract wrappers run against either account mode:
- explicit private key (automated tests, scripts): signed locally
- node-managed account (unlocked dev node, external signer): the node
  lists it in eth_accounts and signs eth_sendTransaction itself
"""

from __future__ import annotations

import logging
import threading
from decimal import Decimal
from pathlib import Path
from typing import Optional

import httpx

from ..config import Settings, load_settings, network_name
from ..errors import BeproError, NotConnectedError
from ..numbers import to_decimal
from .account import ConnectedAccount
from .rpc import RpcClient
from . import tx as txlib

logger = logging.getLogger(__name__)


class Web3Connection:
    def __init__(
        self,
        web3_host: Optional[str] = None,
        private_key: Optional[str] = None,
        *,
        test: bool = False,
        mainnet: bool = True,
        localtest: bool = False,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
        env_path: Optional[Path] = None,
        contracts_out: Optional[Path] = None,
    ) -> None:
        """
        Args:
            web3_host: Node URL; resolved from the environment when None
            private_key: Explicit key; selects local signing
            test: Automated-test session (key from WEB3_PRIVATE_KEY)
            mainnet: Default endpoint choice when no host is configured
            localtest: Local dev node with its well-known first key
            timeout: Per-request timeout in seconds
            transport: httpx transport override (tests use MockTransport)
            env_path: Alternative .env file
            contracts_out: Compiled artifacts used by the contract wrappers
        """
        self.settings: Settings = load_settings(
            web3_host,
            private_key,
            test=test,
            mainnet=mainnet,
            localtest=localtest,
            env_path=env_path,
            contracts_out=contracts_out,
        )
        self.test = test
        self.localtest = localtest
        self._timeout = timeout if timeout is not None else self.settings.timeout
        self._transport = transport
        self._rpc: Optional[RpcClient] = None
        self._account: Optional[ConnectedAccount] = None
        self._chain_id: Optional[int] = self.settings.chain_id
        self._nonce_lock = threading.Lock()
        self._next_nonce: dict[str, int] = {}

        if test or localtest:
            self.start()

    # ---------------------------------------------------------------------
    # Core
    # ---------------------------------------------------------------------

    @property
    def web3_host(self) -> str:
        return self.settings.web3_host

    def start(self) -> None:
        """Open the node transport and select the local account, if any."""
        if self._rpc is None:
            self._rpc = RpcClient(
                self.settings.web3_host, timeout=self._timeout, transport=self._transport
            )
            logger.info("Connected to %s", self.settings.web3_host)
        if self._account is None and self.settings.private_key:
            self._account = ConnectedAccount.from_key(self.settings.private_key)
            logger.info("Using local account %s", self._account.address)

    def login(self) -> bool:
        """
        Select an account.

        With a local key this is a no-op.  Otherwise the first account the
        node manages is selected.

        Raises:
            NotConnectedError: If the node exposes no accounts
        """
        self.start()
        if self._account is not None:
            return True

        accounts = self.rpc.accounts()
        if not accounts:
            raise NotConnectedError(
                f"No accounts available on {self.settings.web3_host}. "
                "Provide a private key or unlock an account on the node."
            )
        self._account = ConnectedAccount.node_managed(accounts[0])
        logger.info("Using node-managed account %s", self._account.address)
        return True

    def is_logged_in(self) -> bool:
        """Whether an account is selected or available from the node."""
        if self._account is not None:
            return True
        if self._rpc is None:
            return False
        try:
            return len(self._rpc.accounts()) > 0
        except (BeproError, httpx.HTTPError):
            return False

    def close(self) -> None:
        if self._rpc is not None:
            self._rpc.close()
            self._rpc = None

    def __enter__(self) -> "Web3Connection":
        self.start()
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    @property
    def rpc(self) -> RpcClient:
        if self._rpc is None:
            raise NotConnectedError("Connection not started. Call start() first.")
        return self._rpc

    @property
    def account(self) -> ConnectedAccount:
        if self._account is None:
            raise NotConnectedError("No account selected. Call login() or provide a private key.")
        return self._account

    @property
    def address(self) -> str:
        return self.account.address

    # ---------------------------------------------------------------------
    # Network
    # ---------------------------------------------------------------------

    def get_chain_id(self) -> int:
        if self._chain_id is None:
            self._chain_id = self.rpc.chain_id()
        return self._chain_id

    def get_network(self) -> str:
        """Human name of the current network, "Unknown" if not listed."""
        return network_name(self.get_chain_id())

    def get_address(self) -> str:
        return self.address

    def get_eth_balance(self, address: Optional[str] = None) -> Decimal:
        """Ether balance (not wei) of ``address`` or the selected account."""
        wei = self.rpc.get_balance(address or self.address)
        return to_decimal(wei, 18)

    # ---------------------------------------------------------------------
    # Call / send primitives
    # ---------------------------------------------------------------------

    def call(self, to: str, data: str, block: str = "latest") -> str:
        """Read-only eth_call; returns raw hex output."""
        request = {"to": to, "data": data}
        if self._account is not None:
            request["from"] = self._account.address
        return self.rpc.eth_call(request, block)

    def send_transaction(
        self,
        to: Optional[str],
        data: str,
        value: int = 0,
        gas_limit: Optional[int] = None,
        wait: bool = True,
        timeout: float = 120,
    ) -> dict:
        """
        Submit a transaction from the selected account.

        Args:
            to: Target address, None to create a contract
            data: Calldata or deployment code
            value: ETH value in wei
            gas_limit: Explicit gas limit (default: estimated)
            wait: Block until the receipt is available
            timeout: Receipt wait timeout in seconds

        Returns:
            Dict with tx_hash, receipt, status (and contract_address)
        """
        rpc = self.rpc
        account = self.account
        chain_id = self.get_chain_id()

        nonce = self._issue_nonce(account.address)
        try:
            tx = txlib.build_transaction(
                rpc,
                account,
                to=to,
                data=data,
                value=value,
                gas_limit=gas_limit,
                chain_id=chain_id,
                nonce=nonce,
            )
            tx_hash = txlib.submit_transaction(rpc, tx, account)
        except Exception:
            self._release_nonce(account.address, nonce)
            raise
        return txlib.finish_transaction(rpc, tx_hash, wait, timeout)

    def _issue_nonce(self, address: str) -> int:
        """
        Reserve the next nonce for ``address``.

        Concurrent sends from one connection get consecutive nonces even
        while the node's pending count still lags behind.
        """
        with self._nonce_lock:
            pending = self.rpc.get_nonce(address)
            nonce = max(pending, self._next_nonce.get(address, 0))
            self._next_nonce[address] = nonce + 1
            return nonce

    def _release_nonce(self, address: str, nonce: int) -> None:
        """Give back a nonce whose transaction never reached the node."""
        with self._nonce_lock:
            if self._next_nonce.get(address) == nonce + 1:
                self._next_nonce[address] = nonce
            else:
                # Later nonces are already out; resync from the node next time
                self._next_nonce.pop(address, None)
