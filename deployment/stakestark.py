"""
The StakeStark deployment: declare the stSTRK, StakeStark and Delegator classes,
deploy the protocol, read back the contracts its constructor created and record
everything to disk.
"""

import typing
from pathlib import Path
from typing import Callable, Mapping, Optional

import yaml

from deployment.config import DeploymentConfig
from deployment.constants import (
    GET_DELEGATORS_ADDRESS,
    GET_LST_ADDRESS,
    PROTOCOL,
    STAKESTARK_CONTRACTS,
)
from deployment.exceptions import ParametersError
from deployment.networks import StarknetNetwork
from deployment.params import Deployer
from deployment.registry import DeploymentRecord, record_from_deployment
from deployment.utils import _load_yaml, to_hex_address, validate_params

NetworkFactory = Callable[[DeploymentConfig], StarknetNetwork]


def deploy_stakestark(deployer: Deployer) -> DeploymentRecord:
    missing = [name for name in STAKESTARK_CONTRACTS if name not in deployer.artifacts]
    if missing:
        raise ParametersError(f"Parameters file does not declare {', '.join(missing)}.")

    deployer.check(PROTOCOL)
    class_hashes = deployer.declare_all()

    protocol = deployer.deploy(PROTOCOL)

    lst_address = deployer.call(protocol, GET_LST_ADDRESS)
    print(f"LST Address: {to_hex_address(lst_address)}")

    delegator_addresses = list(deployer.call(protocol, GET_DELEGATORS_ADDRESS))
    print(
        "Delegator Addresses:",
        ", ".join(to_hex_address(address) for address in delegator_addresses) or "none",
    )

    record = record_from_deployment(
        chain_id=deployer.chain_name,
        deployer=deployer.get_account_address(),
        class_hashes=class_hashes,
        protocol_address=protocol.address,
        tx_hash=protocol.tx_hash,
        lst_address=lst_address,
        delegator_addresses=delegator_addresses,
    )
    deployer.finalize(record)
    return record


def run_deployment(
    params_filepath: Path,
    environ: Mapping[str, str],
    autosign: bool = False,
    record_filepath: Optional[Path] = None,
    network_factory: Optional[NetworkFactory] = None,
    artifacts_dir: Path = Path("."),
) -> DeploymentRecord:
    """
    Loads a revision parameters file and the deployment environment, connects
    to the network and runs the full deployment.

    The environment is validated before any connection is made.
    """
    try:
        params = _load_yaml(params_filepath)
    except yaml.YAMLError as e:
        raise ParametersError(f"Cannot parse parameters file {params_filepath}: {e}") from e
    validate_params(params)

    constants: typing.Dict = params.get("constants") or dict()
    config = DeploymentConfig.from_environ(environ, constants=constants)

    network_factory = network_factory or StarknetNetwork.from_config
    network = network_factory(config)

    deployer = Deployer(
        params=params,
        path=params_filepath,
        network=network,
        config=config,
        autosign=autosign,
        record_filepath=record_filepath,
        artifacts_dir=artifacts_dir,
    )
    return deploy_stakestark(deployer)
