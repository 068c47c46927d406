"""EVM RPC client with endpoint fallback for reads and confirmed writes."""
from __future__ import annotations

import logging
from typing import Any

import aiohttp
from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.exceptions import ContractLogicError, TimeExhausted
from web3.types import TxParams

from ...config import ChainConfig
from ...errors import ReadFailure
from ...models import TransactionResult, TransactionStatus

logger = logging.getLogger(__name__)


class EvmClient:
    """Contract reads with automatic endpoint fallback; signed, awaited writes.

    Reads rotate through ``rpc_endpoints`` until one answers. Writes go to the
    endpoint that last answered and are never retried: a transaction that
    fails to submit, reverts or misses ``confirmation_timeout`` is reported
    through its ``TransactionResult`` and left to the caller.
    """

    def __init__(self, config: ChainConfig, private_key: str = "") -> None:
        self.endpoints = list(config.rpc_endpoints)
        self.chain_id = config.chain_id
        self.timeout = config.rpc_timeout
        self.confirmation_timeout = config.confirmation_timeout
        self.min_gas_price = config.min_gas_price
        self.current_rpc_index = 0
        self._web3_cache: dict[int, AsyncWeb3] = {}
        self._account: LocalAccount | None = None
        if private_key:
            key = private_key if private_key.startswith("0x") else f"0x{private_key}"
            self._account = Account.from_key(key)

    @property
    def address(self) -> str:
        """Address of the signing account."""
        return self._require_account().address

    def _require_account(self) -> LocalAccount:
        if self._account is None:
            raise RuntimeError("No private key configured; cannot sign transactions")
        return self._account

    def _web3(self, rpc_index: int) -> AsyncWeb3:
        if rpc_index not in self._web3_cache:
            provider = AsyncHTTPProvider(
                self.endpoints[rpc_index],
                request_kwargs={"timeout": aiohttp.ClientTimeout(total=self.timeout)},
            )
            self._web3_cache[rpc_index] = AsyncWeb3(provider)
        return self._web3_cache[rpc_index]

    @staticmethod
    def _function(
        w3: AsyncWeb3, contract: str, abi: list[dict[str, Any]], function_name: str, args: tuple
    ) -> Any:
        instance = w3.eth.contract(address=Web3.to_checksum_address(contract), abi=abi)
        return instance.functions[function_name](*args)

    async def call(
        self, contract: str, abi: list[dict[str, Any]], function_name: str, *args: Any
    ) -> Any:
        """Run a view function, falling back across endpoints.

        Raises:
            ReadFailure: the call reverted, or every endpoint failed.
        """
        last_error: Exception | None = None
        for attempt in range(len(self.endpoints)):
            rpc_index = (self.current_rpc_index + attempt) % len(self.endpoints)
            rpc_url = self.endpoints[rpc_index]

            try:
                fn = self._function(self._web3(rpc_index), contract, abi, function_name, args)
                result = await fn.call()
            except ContractLogicError as e:
                raise ReadFailure(f"{function_name} reverted on {contract}: {e}") from e
            except Exception as e:
                last_error = e
                logger.warning("RPC endpoint %s failed on %s: %s", rpc_url, function_name, e)
                if attempt < len(self.endpoints) - 1:
                    logger.info("Trying next endpoint...")
                continue

            if rpc_index != self.current_rpc_index:
                logger.info("Switched to RPC endpoint: %s", rpc_url)
                self.current_rpc_index = rpc_index
            return result

        raise ReadFailure(
            f"All RPC endpoints failed on {function_name}. Last error: {last_error}"
        )

    async def transact(
        self,
        contract: str,
        abi: list[dict[str, Any]],
        function_name: str,
        *args: Any,
        gas_limit: int | None = None,
    ) -> TransactionResult:
        """Sign, submit and wait for a state-changing call.

        ``gas_limit`` overrides estimation for call paths where the node's
        estimate is known to run out of gas. Gas price never goes below
        ``min_gas_price``.
        """
        w3 = self._web3(self.current_rpc_index)

        try:
            account = self._require_account()
            fn = self._function(w3, contract, abi, function_name, args)
            network_gas_price = await w3.eth.gas_price
            tx_params: TxParams = {
                "from": account.address,
                "chainId": self.chain_id,
                "gasPrice": max(network_gas_price, self.min_gas_price),
                "nonce": await w3.eth.get_transaction_count(account.address, "pending"),
            }
            if gas_limit is not None:
                tx_params["gas"] = gas_limit

            tx = await fn.build_transaction(tx_params)
            signed = account.sign_transaction(tx)
            raw_hash = await w3.eth.send_raw_transaction(signed.raw_transaction)
        except Exception as e:
            logger.error("Failed to submit %s on %s: %s", function_name, contract, e)
            return TransactionResult(
                function_name=function_name,
                status=TransactionStatus.FAILED,
                error=str(e),
            )

        tx_hash = Web3.to_hex(raw_hash)
        logger.info("Submitted %s on %s: %s", function_name, contract, tx_hash)

        try:
            receipt = await w3.eth.wait_for_transaction_receipt(
                raw_hash, timeout=self.confirmation_timeout
            )
        except TimeExhausted:
            logger.error(
                "%s (%s) not confirmed within %ss",
                function_name, tx_hash, self.confirmation_timeout,
            )
            return TransactionResult(
                function_name=function_name,
                status=TransactionStatus.TIMEOUT,
                tx_hash=tx_hash,
                error=f"Transaction not confirmed within {self.confirmation_timeout}s",
            )
        except Exception as e:
            logger.error("Error waiting for %s (%s): %s", function_name, tx_hash, e)
            return TransactionResult(
                function_name=function_name,
                status=TransactionStatus.FAILED,
                tx_hash=tx_hash,
                error=str(e),
            )

        success = receipt.get("status") == 1
        if success:
            logger.info("%s confirmed in block %s", function_name, receipt.get("blockNumber"))
        else:
            logger.error("%s reverted: %s", function_name, tx_hash)

        return TransactionResult(
            function_name=function_name,
            status=TransactionStatus.SUCCESS if success else TransactionStatus.FAILED,
            tx_hash=tx_hash,
            block_number=receipt.get("blockNumber"),
            gas_used=receipt.get("gasUsed"),
            error=None if success else "Transaction reverted",
        )
