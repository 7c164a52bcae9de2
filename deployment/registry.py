import json
from pathlib import Path
from typing import Dict, List, NamedTuple

from deployment.constants import DELEGATOR, LST, PROTOCOL
from deployment.exceptions import ArtifactError, RecordWriteError
from deployment.utils import _load_json, to_hex_address

STANDARD_RECORD_JSON_FORMAT = {"indent": 4, "separators": (",", ": ")}


class DeploymentRecord(NamedTuple):
    """Everything a StakeStark deployment produced, as canonical hex strings."""

    chain_id: str
    deployer: str
    class_hashes: Dict[str, str]
    protocol_address: str
    tx_hash: str
    lst_address: str
    delegator_addresses: List[str]

    def to_dict(self) -> Dict:
        return {
            "chain_id": self.chain_id,
            "deployer": self.deployer,
            "class_hashes": dict(self.class_hashes),
            "contracts": {
                PROTOCOL: {"address": self.protocol_address, "tx_hash": self.tx_hash},
                LST: {"address": self.lst_address},
                DELEGATOR: {"addresses": list(self.delegator_addresses)},
            },
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "DeploymentRecord":
        contracts = data["contracts"]
        return cls(
            chain_id=data["chain_id"],
            deployer=to_hex_address(data["deployer"]),
            class_hashes={
                name: to_hex_address(class_hash) for name, class_hash in data["class_hashes"].items()
            },
            protocol_address=to_hex_address(contracts[PROTOCOL]["address"]),
            tx_hash=to_hex_address(contracts[PROTOCOL]["tx_hash"]),
            lst_address=to_hex_address(contracts[LST]["address"]),
            delegator_addresses=[
                to_hex_address(address) for address in contracts[DELEGATOR]["addresses"]
            ],
        )


def record_from_deployment(
    chain_id: str,
    deployer: int,
    class_hashes: Dict[str, int],
    protocol_address: int,
    tx_hash: int,
    lst_address: int,
    delegator_addresses: List[int],
) -> DeploymentRecord:
    """Normalizes raw network values into a deployment record."""
    return DeploymentRecord(
        chain_id=chain_id,
        deployer=to_hex_address(deployer),
        class_hashes={name: to_hex_address(value) for name, value in class_hashes.items()},
        protocol_address=to_hex_address(protocol_address),
        tx_hash=to_hex_address(tx_hash),
        lst_address=to_hex_address(lst_address),
        delegator_addresses=[to_hex_address(address) for address in delegator_addresses],
    )


def write_record(record: DeploymentRecord, filepath: Path) -> Path:
    """Writes a deployment record, replacing whatever was at filepath."""
    if filepath.exists():
        print(f"Overwriting existing deployment record at {filepath}.")
    else:
        print(f"Creating new deployment record at {filepath}.")

    try:
        filepath.parent.mkdir(parents=True, exist_ok=True)
        with open(filepath, "w") as file:
            json.dump(record.to_dict(), file, **STANDARD_RECORD_JSON_FORMAT)
    except OSError as e:
        raise RecordWriteError(f"Cannot write deployment record to {filepath}: {e}") from e

    print(f"(i) Deployment record written to {filepath}!")
    return filepath


def read_record(filepath: Path) -> DeploymentRecord:
    try:
        data = _load_json(filepath)
    except (OSError, ValueError) as e:
        raise ArtifactError(f"Cannot read deployment record {filepath}: {e}") from e
    try:
        return DeploymentRecord.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        raise ArtifactError(f"Malformed deployment record {filepath}: {e}") from e
