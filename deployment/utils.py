import json
from pathlib import Path
from typing import Any, Dict, Union
from urllib.parse import urlsplit

import yaml
from eth_utils import is_0x_prefixed, is_hex, to_hex, to_int

from deployment.constants import ARTIFACTS_DIR, FIELD_PRIME, SUPPORTED_CHAINS
from deployment.exceptions import ParametersError

Felt = int


def _load_yaml(filepath: Path) -> dict:
    """Loads a YAML file."""
    with open(filepath, "r") as file:
        return yaml.safe_load(file)


def _load_json(filepath: Path) -> dict:
    """Loads a JSON file."""
    with open(filepath, "r") as file:
        return json.load(file)


def parse_felt(value: Union[int, str]) -> Felt:
    """
    Parses an integer, a decimal string or a 0x-prefixed hex string into a felt.
    Raises ValueError for anything that is not a non-negative value below the field prime.
    """
    if isinstance(value, bool):
        raise ValueError(f"'{value}' is not a felt")
    if isinstance(value, int):
        felt = value
    elif isinstance(value, str):
        value = value.strip()
        if is_0x_prefixed(value):
            if not is_hex(value) or len(value) == 2:
                raise ValueError(f"'{value}' is not a valid hex string")
            felt = to_int(hexstr=value)
        elif value.isdigit():
            felt = int(value)
        else:
            raise ValueError(f"'{value}' is neither a decimal nor a 0x-prefixed hex string")
    else:
        raise ValueError(f"'{value}' is not a felt")

    if not 0 <= felt < FIELD_PRIME:
        raise ValueError(f"{value} is outside of the felt range")
    return felt


def to_hex_address(value: Union[int, str]) -> str:
    """
    Returns the canonical 0x-prefixed lowercase hex form of an address or class hash.
    Leading zeros are dropped, so padded and unpadded forms of a value agree.
    """
    return to_hex(parse_felt(value))


def get_record_filepath(params: Dict) -> Path:
    """Returns the filepath of the deployment record."""
    artifact_config = params.get("artifacts") or {}
    artifact_dir = Path(artifact_config.get("dir", ARTIFACTS_DIR))
    filename = artifact_config.get("filename")
    if not filename:
        raise ParametersError("artifact filename is not set in params file.")
    return artifact_dir / filename


def validate_params(params: Any) -> Path:
    """
    Checks the shape of a revision parameters file and returns the record filepath.
    """
    if not isinstance(params, dict):
        raise ParametersError("Malformed parameters YAML.")

    deployment = params.get("deployment")
    if not deployment:
        raise ParametersError("deployment is not set in params file.")

    chain_id = deployment.get("chain_id")
    if not chain_id:
        raise ParametersError("chain_id is not set in params file.")
    if chain_id not in SUPPORTED_CHAINS:
        raise ParametersError(
            f"Unsupported chain_id '{chain_id}'; expected one of {', '.join(SUPPORTED_CHAINS)}."
        )

    declarations = params.get("declarations")
    if not declarations or not isinstance(declarations, dict):
        raise ParametersError("Parameters file missing 'declarations' field.")

    contracts = params.get("contracts")
    if not contracts:
        raise ParametersError("Parameters file missing 'contracts' field.")

    return get_record_filepath(params=params)


def rpc_host(rpc_url: str) -> str:
    """Returns the host of an RPC URL; the path and query may carry an API key."""
    parts = urlsplit(rpc_url)
    return parts.netloc.rpartition("@")[2] or "<unknown host>"
