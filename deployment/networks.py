import asyncio
import typing
from typing import Any, List, NamedTuple, Optional

import aiohttp
from starknet_py.cairo.felt import decode_shortstring
from starknet_py.common import create_sierra_compiled_contract
from starknet_py.contract import Contract
from starknet_py.hash.sierra_class_hash import compute_sierra_class_hash
from starknet_py.net.account.account import Account
from starknet_py.net.client_errors import ClientError
from starknet_py.net.full_node_client import FullNodeClient
from starknet_py.net.signer.stark_curve_signer import KeyPair
from starknet_py.transaction_errors import TransactionFailedError

from deployment.artifacts import ABI, ContractArtifact
from deployment.config import DeploymentConfig
from deployment.constants import CLASS_HASH_NOT_FOUND
from deployment.exceptions import ConfirmationError, QueryError, SubmissionError
from deployment.utils import Felt, rpc_host

# the node answered with an error, or could not be reached at all
RPC_ERRORS = (ClientError, aiohttp.ClientError, asyncio.TimeoutError)


def _reason(error: Exception) -> str:
    return getattr(error, "message", None) or str(error) or type(error).__name__


class Submission(NamedTuple):
    """The outcome of a submitted declare or deploy transaction."""

    tx_hash: Felt
    class_hash: Optional[Felt] = None
    address: Optional[Felt] = None


class StarknetNetwork:
    """
    A Starknet RPC client bound to the deployer account.

    starknet.py is asynchronous; this object owns one event loop and exposes
    blocking calls so the deployment reads as a plain sequence of steps.
    Construct it once and pass it to whoever needs to talk to the chain.
    """

    def __init__(
        self,
        rpc_url: str,
        account_address: Felt,
        private_key: Felt,
        chain_id: Optional[int] = None,
    ):
        self.rpc_url = rpc_url
        self._loop = asyncio.new_event_loop()
        self.client = FullNodeClient(node_url=rpc_url)
        if chain_id is None:
            try:
                chain_id = int(self._run(self.client.get_chain_id()), 16)
            except RPC_ERRORS as e:
                raise SubmissionError(f"Cannot reach {rpc_host(rpc_url)}: {_reason(e)}") from e
        self.chain_id = chain_id
        self.account = Account(
            client=self.client,
            address=account_address,
            key_pair=KeyPair.from_private_key(private_key),
            chain=chain_id,
        )

    @classmethod
    def from_config(cls, config: DeploymentConfig) -> "StarknetNetwork":
        return cls(
            rpc_url=config.rpc_url,
            account_address=config.account_address,
            private_key=config.private_key,
        )

    def _run(self, coroutine: typing.Awaitable) -> Any:
        return self._loop.run_until_complete(coroutine)

    @property
    def chain_name(self) -> str:
        return decode_shortstring(self.chain_id)

    @property
    def account_address(self) -> Felt:
        return self.account.address

    @staticmethod
    def compute_class_hash(artifact: ContractArtifact) -> Felt:
        """Computes the class hash the network will assign to a Sierra class."""
        sierra_class = create_sierra_compiled_contract(compiled_contract=artifact.sierra)
        return compute_sierra_class_hash(sierra_class)

    def is_declared(self, class_hash: Felt) -> bool:
        try:
            self._run(self.client.get_class_by_hash(class_hash=class_hash))
        except RPC_ERRORS as e:
            if str(getattr(e, "code", None)) == str(CLASS_HASH_NOT_FOUND):
                return False
            raise SubmissionError(f"Cannot look up class {hex(class_hash)}: {_reason(e)}") from e
        return True

    def declare(self, artifact: ContractArtifact) -> Submission:
        try:
            result = self._run(
                Contract.declare_v3(
                    account=self.account,
                    compiled_contract=artifact.sierra,
                    compiled_contract_casm=artifact.casm,
                    auto_estimate=True,
                )
            )
        except RPC_ERRORS as e:
            raise SubmissionError(f"Declaration of {artifact.name} rejected: {_reason(e)}") from e
        return Submission(tx_hash=result.hash, class_hash=result.class_hash)

    def deploy(self, class_hash: Felt, abi: ABI, constructor_args: List[Felt]) -> Submission:
        try:
            result = self._run(
                Contract.deploy_contract_v3(
                    account=self.account,
                    class_hash=class_hash,
                    abi=abi,
                    constructor_args=constructor_args,
                    auto_estimate=True,
                )
            )
        except RPC_ERRORS as e:
            raise SubmissionError(
                f"Deployment of class {hex(class_hash)} rejected: {_reason(e)}"
            ) from e
        return Submission(
            tx_hash=result.hash, class_hash=class_hash, address=result.deployed_contract.address
        )

    def wait_for_tx(self, tx_hash: Felt) -> None:
        """Blocks until the transaction is accepted; raises if it reverts or is rejected."""
        try:
            self._run(self.client.wait_for_tx(tx_hash=tx_hash))
        except TransactionFailedError as e:
            raise ConfirmationError(f"Transaction {hex(tx_hash)} failed: {e}") from e
        except RPC_ERRORS as e:
            raise ConfirmationError(
                f"Could not confirm transaction {hex(tx_hash)}: {_reason(e)}"
            ) from e

    def call(self, address: Felt, abi: ABI, function_name: str) -> Any:
        contract = Contract(address=address, abi=abi, provider=self.account, cairo_version=1)
        try:
            result = self._run(contract.functions[function_name].call())
        except RPC_ERRORS as e:
            raise QueryError(
                f"Call to {function_name} on {hex(address)} failed: {_reason(e)}"
            ) from e
        return result[0]
