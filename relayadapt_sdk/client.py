"""
RelayAdaptClient - client for a deployed relay adapt contract.
"""
import logging
import urllib.parse
from typing import Dict, Any, List, Optional, Protocol, Sequence, Union

from eth_abi import decode
from web3 import Web3
from web3.exceptions import Web3Exception
from web3.types import TxReceipt as Web3TxReceipt
from eth_account import Account
from eth_account.signers.base import BaseAccount

from .abi import (
    GET_ADAPT_PARAMS_SIGNATURE, RELAY_SIGNATURE, decode_call_results, decode_revert_reason,
    encode_function_call,
)
from .adapt_params import bind_transactions, compute_adapt_params
from .exceptions import ParameterMismatchError, TransactionError
from .models import ActionData, CallResult, Transaction, TxReceipt

DEFAULT_GAS_LIMIT = 3_000_000


class Signer(Protocol):
    """Protocol for custom signers"""
    address: str

    def sign_transaction(self, transaction_dict: Dict[str, Any]) -> Any:
        """Sign transaction and return signed tx object"""
        ...


class RelayAdaptClient:
    """
    Client for submitting relay requests to a relay adapt contract.

    This client handles:
    1. Computing and checking adapt params locally before submission
    2. Reading adapt params from the contract
    3. Building, signing and sending ``relay`` transactions

    To use this client, you'll need:
    - An Ethereum RPC endpoint
    - The relay adapt contract address
    - Either a private key or a custom signer (for ``relay``)
    """

    def __init__(
        self,
        rpc_url: str,
        contract_address: str,
        priv_key: Optional[str] = None,
        signer: Optional[Signer] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the RelayAdaptClient

        Args:
            rpc_url: Ethereum RPC endpoint URL
            contract_address: Relay adapt contract address
            priv_key: Ethereum private key (optional if signer provided)
            signer: Custom signer object (optional if priv_key provided)
            logger: Optional logger instance to use for debug/info logging

        Raises:
            ValueError: If the RPC URL doesn't use https (unless it's localhost/127.0.0.1)
            ValueError: If the contract address is invalid
        """
        parsed = urllib.parse.urlparse(rpc_url)
        host = parsed.netloc.split(':')[0]
        is_local = host in ('localhost', '127.0.0.1')
        if parsed.scheme != 'https' and not is_local:
            raise ValueError(f"rpc_url must use https:// for security (got: {parsed.scheme}://)")

        if not Web3.is_address(contract_address):
            raise ValueError(f"Invalid contract address: {contract_address}")

        self.rpc_url = rpc_url
        self.contract_address = Web3.to_checksum_address(contract_address)
        self.logger = logger or logging.getLogger(__name__)

        self.w3 = Web3(Web3.HTTPProvider(rpc_url))

        self.account: Optional[BaseAccount] = None
        self.signer = signer
        if priv_key:
            self.account = Account.from_key(priv_key)

    @property
    def address(self) -> str:
        """
        Get the account address

        Raises:
            ValueError: If no account or signer is available
        """
        if self.account:
            return self.account.address
        elif self.signer:
            return self.signer.address
        else:
            raise ValueError("No account or signer available")

    def compute_adapt_params(self, transactions: Sequence[Transaction], action_data: ActionData) -> bytes:
        """Compute adapt params locally, without touching the network."""
        return compute_adapt_params(transactions, action_data)

    def bind(self, transactions: Sequence[Transaction], action_data: ActionData):
        """Return copies of ``transactions`` bound to ``action_data``."""
        return bind_transactions(transactions, action_data)

    def get_adapt_params(self, transactions: Sequence[Transaction], action_data: ActionData) -> bytes:
        """
        Ask the contract for the adapt params of a batch.

        Returns:
            32-byte adapt params as computed on-chain

        Raises:
            Web3Exception: If the call fails
        """
        data = encode_function_call(
            GET_ADAPT_PARAMS_SIGNATURE,
            [transaction.to_abi() for transaction in transactions],
            action_data.to_abi(),
        )
        returned = self.w3.eth.call({'to': self.contract_address, 'data': data})
        (adapt_params,) = decode(["bytes32"], bytes(returned))
        return adapt_params

    def check_binding(self, transactions: Sequence[Transaction], action_data: ActionData) -> None:
        """
        Raises:
            ParameterMismatchError: If any transaction is not bound to ``action_data``
        """
        expected = compute_adapt_params(transactions, action_data)
        for index, transaction in enumerate(transactions):
            if transaction.adapt_params != expected:
                raise ParameterMismatchError(index, expected, transaction.adapt_params)

    def get_call_results(self, receipt: Union[TxReceipt, Dict[str, Any]]) -> List[CallResult]:
        """
        Read the per-call outcomes of a relay from its receipt.

        Args:
            receipt: ``TxReceipt`` returned by ``relay`` or a raw Web3 receipt

        Returns:
            One ``CallResult`` per call in the relayed action data

        Raises:
            RelayAdaptError: If the receipt holds no ``CallResult`` event
                from this contract
        """
        logs = receipt.logs if isinstance(receipt, TxReceipt) else receipt.get("logs", [])
        return decode_call_results(logs, address=self.contract_address)

    def first_call_error(self, receipt: Union[TxReceipt, Dict[str, Any]]) -> Optional[str]:
        """
        Return the reason of the first failed call in a relay, if any.

        Reverts without an ``Error(string)`` payload are reported as
        ``"Unknown Relay Adapt error."``.
        """
        for index, result in enumerate(self.get_call_results(receipt)):
            if not result.success:
                reason = decode_revert_reason(result.returned)
                self.logger.debug(f"Relay call {index} failed: {reason}")
                return reason
        return None

    def relay(
        self,
        transactions: Sequence[Transaction],
        action_data: ActionData,
        value: int = 0,
        gas: Optional[int] = None,
        gas_price_override: Optional[int] = None,
        poll_interval: Optional[float] = None,
        wait_for_receipt: bool = True
    ) -> TxReceipt:
        """
        Submit a relay transaction

        Args:
            transactions: Shielded transactions bound to ``action_data``
            action_data: Follow-up calls
            value: Native value to send with the relay
            gas: Gas limit to use (if None, will be estimated or use default)
            gas_price_override: Gas price to use (if None, will use current network price)
            poll_interval: How often to poll for receipt (in seconds, default=0.1)
            wait_for_receipt: Whether to wait for the transaction receipt (default=True)

        Returns:
            Transaction receipt object

        Raises:
            ParameterMismatchError: If the batch is not bound to ``action_data``
            TransactionError: If the transaction cannot be signed or sent
            ValueError: If neither account nor signer is available
            Web3Exception: If there's an error with Web3 operations
        """
        if not self.account and not self.signer:
            raise ValueError("Neither account nor signer is available")

        # Fail before spending gas on a relay the contract would reject
        self.check_binding(transactions, action_data)

        try:
            data = encode_function_call(
                RELAY_SIGNATURE,
                [transaction.to_abi() for transaction in transactions],
                action_data.to_abi(),
            )
            from_address = self.address
            nonce = self.w3.eth.get_transaction_count(from_address)

            tx_params = {
                'from': from_address,
                'to': self.contract_address,
                'data': data,
                'value': value,
                'nonce': nonce,
                'chainId': self.w3.eth.chain_id,
            }

            if gas is None:
                try:
                    gas = int(self.w3.eth.estimate_gas(tx_params) * 1.1)
                    self.logger.debug(f"Estimated gas: {gas}")
                except Exception as e:
                    gas = max(DEFAULT_GAS_LIMIT, action_data.min_gas_limit + 100_000)
                    self.logger.warning(f"Gas estimation failed, using default: {gas}. Error: {e}")
            if gas <= action_data.min_gas_limit:
                self.logger.warning(
                    f"Gas limit {gas} does not exceed the action's minimum {action_data.min_gas_limit}"
                )
            tx_params['gas'] = gas

            if gas_price_override is not None:
                tx_params['gasPrice'] = gas_price_override
            else:
                tx_params['gasPrice'] = self.w3.eth.gas_price

            try:
                if self.account:
                    signed_tx = self.account.sign_transaction(tx_params)
                else:
                    signed_tx = self.signer.sign_transaction(tx_params)
            except Exception as e:
                self.logger.error(f"Transaction signing failed: {e}")
                raise TransactionError(f"Failed to sign transaction: {str(e)}")

            try:
                tx_hash = self.w3.eth.send_raw_transaction(signed_tx.raw_transaction)
                self.logger.info(f"Relay transaction sent: {Web3.to_hex(tx_hash)}")
            except Web3Exception:
                raise
            except Exception as e:
                self.logger.error(f"Failed to send transaction: {e}")
                raise TransactionError(f"Failed to send transaction: {str(e)}")

            if wait_for_receipt:
                receipt = self.w3.eth.wait_for_transaction_receipt(
                    tx_hash,
                    timeout=120,
                    poll_latency=poll_interval or 0.1
                )
                return self._convert_receipt(receipt)
            return TxReceipt(
                transactionHash=Web3.to_hex(tx_hash),
                blockNumber=0,
                blockHash="0x" + "00" * 32,
                status=0,  # Status unknown yet
                gasUsed=0,
                **{"from": from_address},
                logs=[]
            )

        except TransactionError:
            raise
        except Web3Exception as e:
            self.logger.error(f"Web3 error: {e}")
            raise
        except Exception as e:
            self.logger.error(f"Unexpected error during relay: {e}")
            raise TransactionError(f"Transaction failed: {str(e)}")

    def _convert_receipt(self, web3_receipt: Web3TxReceipt) -> TxReceipt:
        """Convert Web3 receipt to our TxReceipt model"""
        receipt_dict = dict(web3_receipt)

        for key, value in list(receipt_dict.items()):
            if isinstance(value, bytes):
                receipt_dict[key] = Web3.to_hex(value)

        return TxReceipt.model_validate(receipt_dict)
