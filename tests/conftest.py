import json
from pathlib import Path
from typing import List

import pytest

from deployment.constants import CONSTRUCTOR_PARAMS_DIR, FIELD_PRIME
from deployment.exceptions import ConfirmationError
from deployment.networks import Submission
from deployment.utils import _load_yaml

# Common constants
ADDRESS_TYPE = "core::starknet::contract_address::ContractAddress"
CLASS_HASH_TYPE = "core::starknet::class_hash::ClassHash"

CONSTRUCTOR_TYPES = {
    "strk_token": ADDRESS_TYPE,
    "pool_contract": ADDRESS_TYPE,
    "delegator_class_hash": CLASS_HASH_TYPE,
    "stSTRK_class_hash": CLASS_HASH_TYPE,
    "initial_platform_fee": "core::integer::u16",
    "platform_fee_recipient": ADDRESS_TYPE,
    "initial_withdrawal_window_period": "core::integer::u64",
    "admin": ADDRESS_TYPE,
    "operator": ADDRESS_TYPE,
    "initial_delegator_count": "core::integer::u32",
}

BASELINE_CONSTRUCTOR = [
    "strk_token",
    "pool_contract",
    "delegator_class_hash",
    "stSTRK_class_hash",
    "initial_platform_fee",
    "platform_fee_recipient",
    "initial_withdrawal_window_period",
    "admin",
    "operator",
]
DELEGATORS_CONSTRUCTOR = BASELINE_CONSTRUCTOR + ["initial_delegator_count"]

BASELINE_PARAMS = CONSTRUCTOR_PARAMS_DIR / "sepolia" / "stakestark.yml"
DELEGATORS_PARAMS = CONSTRUCTOR_PARAMS_DIR / "sepolia" / "stakestark-delegators.yml"

CLASS_HASHES = {
    "stSTRK": 0x1A2B,
    "StakeStark": 0x3C4D,
    "Delegator": 0x5E6F,
}

DEPLOYER_ADDRESS = 0xDE9107E5
PROTOCOL_ADDRESS = 0x0499C0FFEE
LST_ADDRESS = 0x0577
DELEGATOR_ADDRESSES = [0xD1, 0xD2, 0xD3]

ENVIRONMENT = {
    "RPC_URL": "http://127.0.0.1:5050",
    "ACCOUNT_ADDRESS": hex(DEPLOYER_ADDRESS),
    "PRIVATE_KEY": "0x1234",
    "STRK_TOKEN_ADDRESS": "0x04718f5a0fc34cc1af16a1cdee98ffb20c31f5cd61d6ab07201858f4287c938d",
    "POOL_CONTRACT_ADDRESS": "0x0a11",
    "PLATFORM_FEE_RECIPIENT": "0xfee",
    "ADMIN_ADDRESS": "0xAD",
    "OPERATOR_ADDRESS": "0x0b",
}


def stakestark_abi(constructor_names: List[str]) -> List[dict]:
    return [
        {
            "type": "interface",
            "name": "stakestark::interfaces::IStakeStark",
            "items": [
                {
                    "type": "function",
                    "name": "get_lst_address",
                    "inputs": [],
                    "outputs": [{"type": ADDRESS_TYPE}],
                    "state_mutability": "view",
                },
                {
                    "type": "function",
                    "name": "get_delegators_address",
                    "inputs": [],
                    "outputs": [{"type": f"core::array::Array::<{ADDRESS_TYPE}>"}],
                    "state_mutability": "view",
                },
            ],
        },
        {
            "type": "constructor",
            "name": "constructor",
            "inputs": [{"name": name, "type": CONSTRUCTOR_TYPES[name]} for name in constructor_names],
        },
    ]


def write_artifact(directory: Path, name: str, abi: List[dict]) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    sierra = directory / f"stakestark__{name}.contract_class.json"
    sierra.write_text(
        json.dumps({"sierra_program": [], "contract_class_version": "0.1.0", "abi": abi})
    )
    casm = directory / f"stakestark__{name}.compiled_contract_class.json"
    casm.write_text(json.dumps({"prime": hex(FIELD_PRIME), "bytecode": []}))
    return sierra


class FakeNetwork:
    """Stands in for StarknetNetwork and records every call made against it."""

    rpc_url = "http://127.0.0.1:5050"

    def __init__(self, declared=(), chain_name="SN_SEPOLIA", revert_deployment=False):
        self.declared = set(declared)
        self.chain_name = chain_name
        self.revert_deployment = revert_deployment
        self.account_address = DEPLOYER_ADDRESS
        self.calls = list()
        self._next_tx_hash = 0x7000
        self._deploy_tx_hashes = set()

    def _new_tx_hash(self) -> int:
        self._next_tx_hash += 1
        return self._next_tx_hash

    def methods(self) -> List[str]:
        return [call[0] for call in self.calls]

    @staticmethod
    def compute_class_hash(artifact):
        return CLASS_HASHES[artifact.name]

    def is_declared(self, class_hash):
        self.calls.append(("is_declared", class_hash))
        return class_hash in self.declared

    def declare(self, artifact):
        self.calls.append(("declare", artifact.name))
        class_hash = CLASS_HASHES[artifact.name]
        self.declared.add(class_hash)
        return Submission(tx_hash=self._new_tx_hash(), class_hash=class_hash)

    def deploy(self, class_hash, abi, constructor_args):
        self.calls.append(("deploy", class_hash, list(constructor_args)))
        tx_hash = self._new_tx_hash()
        self._deploy_tx_hashes.add(tx_hash)
        return Submission(tx_hash=tx_hash, class_hash=class_hash, address=PROTOCOL_ADDRESS)

    def wait_for_tx(self, tx_hash):
        self.calls.append(("wait_for_tx", tx_hash))
        if self.revert_deployment and tx_hash in self._deploy_tx_hashes:
            raise ConfirmationError(f"Transaction {hex(tx_hash)} failed: REVERTED")

    def call(self, address, abi, function_name):
        self.calls.append(("call", function_name))
        if function_name == "get_lst_address":
            return LST_ADDRESS
        if function_name == "get_delegators_address":
            return list(DELEGATOR_ADDRESSES)
        raise AssertionError(f"unexpected call {function_name}")


# Fixtures
@pytest.fixture
def environ():
    return dict(ENVIRONMENT)


@pytest.fixture
def fake_network():
    return FakeNetwork()


@pytest.fixture
def project_dir(tmp_path):
    """A project root holding baseline StakeStark artifacts under target/dev."""
    target = tmp_path / "target" / "dev"
    write_artifact(target, "stSTRK", [])
    write_artifact(target, "StakeStark", stakestark_abi(BASELINE_CONSTRUCTOR))
    write_artifact(target, "Delegator", [])
    return tmp_path


@pytest.fixture
def delegators_project_dir(tmp_path):
    """A project root whose StakeStark constructor takes an initial delegator count."""
    target = tmp_path / "target" / "dev"
    write_artifact(target, "stSTRK", [])
    write_artifact(target, "StakeStark", stakestark_abi(DELEGATORS_CONSTRUCTOR))
    write_artifact(target, "Delegator", [])
    return tmp_path


@pytest.fixture
def baseline_params():
    return _load_yaml(BASELINE_PARAMS)


@pytest.fixture
def delegators_params():
    return _load_yaml(DELEGATORS_PARAMS)


@pytest.fixture
def make_network():
    return FakeNetwork
