"""CastCanvas Contract Client — async web3 wrapper around the deployed pixel contract.

Invariants:
    - Views (getAvailablePixels, getDailyPixels, purchasedPixels, lastResetDay) are eth_call
    - Owner-only functions are sent as transactions signed with the owner key
    - Owner transactions are sent one at a time under a process-wide nonce lock
    - A mined transaction with status != 1 raises ContractTransactionError
    - use_pixel is True only when the receipt holds a PixelUsed log for that user,
      emitted by this contract
    - web3 transport failures are mapped to ChainRPCError (core/errors.py)

Design Decisions:
    - ABI embedded as a constant: the contract surface is small and stable, and the
      module has no file IO at import time
    - usePixel's bool return value is not observable from a transaction receipt;
      use_pixel reports success by whether the mined receipt carries PixelUsed
"""

import asyncio
import logging

from web3 import AsyncWeb3
from web3.exceptions import TimeExhausted, Web3Exception
from web3.logs import DISCARD

from castcanvas.core.enforce_input import same_address
from castcanvas.core.errors import ChainRPCError, ErrorContext, ExternalServiceError

logger = logging.getLogger(__name__)

_ADDRESS_IN = {"internalType": "address", "name": "user", "type": "address"}
_UINT_OUT = {"internalType": "uint256", "name": "", "type": "uint256"}

CASTCANVAS_ABI: list[dict] = [
    {"type": "function", "name": "purchasePixels", "stateMutability": "payable",
     "inputs": [], "outputs": []},
    {"type": "function", "name": "getAvailablePixels", "stateMutability": "view",
     "inputs": [_ADDRESS_IN], "outputs": [_UINT_OUT]},
    {"type": "function", "name": "getDailyPixels", "stateMutability": "view",
     "inputs": [_ADDRESS_IN], "outputs": [_UINT_OUT]},
    {"type": "function", "name": "purchasedPixels", "stateMutability": "view",
     "inputs": [_ADDRESS_IN], "outputs": [_UINT_OUT]},
    {"type": "function", "name": "lastResetDay", "stateMutability": "view",
     "inputs": [_ADDRESS_IN], "outputs": [_UINT_OUT]},
    {"type": "function", "name": "usePixel", "stateMutability": "nonpayable",
     "inputs": [_ADDRESS_IN],
     "outputs": [{"internalType": "bool", "name": "", "type": "bool"}]},
    {"type": "function", "name": "resetDailyPixels", "stateMutability": "nonpayable",
     "inputs": [_ADDRESS_IN], "outputs": []},
    {"type": "function", "name": "addPixelsToUser", "stateMutability": "nonpayable",
     "inputs": [_ADDRESS_IN,
                {"internalType": "uint256", "name": "amount", "type": "uint256"}],
     "outputs": []},
    {"type": "function", "name": "withdraw", "stateMutability": "nonpayable",
     "inputs": [], "outputs": []},
    {"type": "function", "name": "emergencyWithdraw", "stateMutability": "nonpayable",
     "inputs": [{"internalType": "address", "name": "recipient", "type": "address"}],
     "outputs": []},
    {"type": "event", "name": "PixelsPurchased", "anonymous": False,
     "inputs": [
         {"indexed": True, "internalType": "address", "name": "user", "type": "address"},
         {"indexed": False, "internalType": "uint256", "name": "amount", "type": "uint256"},
         {"indexed": False, "internalType": "uint256", "name": "cost", "type": "uint256"},
     ]},
    {"type": "event", "name": "PixelUsed", "anonymous": False,
     "inputs": [
         {"indexed": True, "internalType": "address", "name": "user", "type": "address"},
         {"indexed": False, "internalType": "string", "name": "source", "type": "string"},
     ]},
]


class ContractTransactionError(ExternalServiceError):
    """Owner transaction was mined but reverted."""
    def __init__(self, function: str, tx_hash: str, context: ErrorContext | None = None):
        super().__init__(
            f"Contract call {function} reverted (tx {tx_hash})",
            "CONTRACT_TX_REVERTED", context,
        )
        self.function = function
        self.tx_hash = tx_hash


class CastCanvasContractClient:
    """Reads views and sends owner transactions to the CastCanvas contract."""

    def __init__(
        self,
        rpc_url: str,
        contract_address: str,
        owner_private_key: str,
        chain_id: int,
        tx_timeout_seconds: float = 60.0,
        w3: AsyncWeb3 | None = None,
    ):
        self.w3 = w3 or AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(rpc_url))
        self.contract = self.w3.eth.contract(
            address=AsyncWeb3.to_checksum_address(contract_address),
            abi=CASTCANVAS_ABI,
        )
        self.owner = self.w3.eth.account.from_key(owner_private_key)
        self.chain_id = chain_id
        self.tx_timeout_seconds = tx_timeout_seconds
        self._nonce_lock = asyncio.Lock()

    # ─── Views ──────────────────────────────────────────────────

    async def get_available_pixels(self, user: str) -> int:
        return await self._call("getAvailablePixels", user)

    async def get_daily_pixels(self, user: str) -> int:
        return await self._call("getDailyPixels", user)

    async def get_purchased_pixels(self, user: str) -> int:
        return await self._call("purchasedPixels", user)

    async def get_last_reset_day(self, user: str) -> int:
        return await self._call("lastResetDay", user)

    # ─── Owner transactions ─────────────────────────────────────

    async def use_pixel(self, user: str) -> bool:
        """Send usePixel; True when the contract actually spent a unit of ``user``."""
        receipt = await self._transact("usePixel", user)
        events = self.contract.events.PixelUsed().process_receipt(
            receipt, errors=DISCARD,
        )
        return any(
            same_address(e["address"], self.contract.address)
            and same_address(e["args"]["user"], user)
            for e in events
        )

    async def reset_daily_pixels(self, user: str) -> str:
        return self._hash(await self._transact("resetDailyPixels", user))

    async def add_pixels_to_user(self, user: str, amount: int) -> str:
        return self._hash(await self._transact("addPixelsToUser", user, amount))

    async def withdraw(self) -> str:
        return self._hash(await self._transact("withdraw"))

    async def emergency_withdraw(self, recipient: str) -> str:
        return self._hash(await self._transact("emergencyWithdraw", recipient))

    # ─── Internals ──────────────────────────────────────────────

    async def _call(self, function: str, *args) -> int:
        try:
            fn = getattr(self.contract.functions, function)(*self._addresses(args))
            return int(await fn.call())
        except (Web3Exception, OSError) as e:
            raise ChainRPCError(str(e), f"eth_call:{function}") from e

    async def _transact(self, function: str, *args):
        """Sign, send and wait for an owner transaction; returns the mined receipt."""
        async with self._nonce_lock:
            try:
                nonce = await self.w3.eth.get_transaction_count(
                    self.owner.address, "pending",
                )
                fn = getattr(self.contract.functions, function)(*self._addresses(args))
                tx = await fn.build_transaction({
                    "from": self.owner.address,
                    "nonce": nonce,
                    "chainId": self.chain_id,
                })
                signed = self.owner.sign_transaction(tx)
                tx_hash = await self.w3.eth.send_raw_transaction(
                    signed.raw_transaction,
                )
                receipt = await self.w3.eth.wait_for_transaction_receipt(
                    tx_hash, timeout=self.tx_timeout_seconds,
                )
            except TimeExhausted as e:
                raise ChainRPCError("transaction not mined in time", function) from e
            except (Web3Exception, OSError) as e:
                raise ChainRPCError(str(e), function) from e
        hex_hash = AsyncWeb3.to_hex(tx_hash)
        if receipt["status"] != 1:
            logger.error(
                f"Contract transaction reverted: {function}",
                extra={"tx_hash": hex_hash, "method": function},
            )
            raise ContractTransactionError(function, hex_hash)
        logger.info(
            f"Contract transaction mined: {function}",
            extra={"tx_hash": hex_hash, "method": function},
        )
        return receipt

    @staticmethod
    def _hash(receipt) -> str:
        return AsyncWeb3.to_hex(receipt["transactionHash"])

    @staticmethod
    def _addresses(args: tuple) -> list:
        """Checksum any address-looking string argument (web3 rejects lower-case)."""
        return [
            AsyncWeb3.to_checksum_address(a)
            if isinstance(a, str) and AsyncWeb3.is_address(a.lower()) else a
            for a in args
        ]
