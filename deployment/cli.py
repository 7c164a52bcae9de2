import os
from pathlib import Path

import click
from dotenv import find_dotenv, load_dotenv

from deployment.constants import DEFAULT_PARAMS_FILEPATH
from deployment.exceptions import DeploymentError
from deployment.registry import read_record
from deployment.stakestark import run_deployment


@click.command()
@click.option(
    "--params-filepath",
    "-p",
    help="Revision parameters YAML",
    type=click.Path(dir_okay=False, exists=True, path_type=Path),
    default=DEFAULT_PARAMS_FILEPATH,
    show_default=True,
)
@click.option(
    "--env-file",
    "-e",
    help="Dotenv file to load before reading the environment (defaults to ./.env if present)",
    type=click.Path(dir_okay=False, exists=True, path_type=Path),
    required=False,
)
@click.option(
    "--record-filepath",
    "-o",
    help="Write the deployment record here instead of the path in the params file",
    type=click.Path(dir_okay=False, path_type=Path),
    required=False,
)
@click.option(
    "--autosign",
    help="Sign and submit every transaction without prompting",
    is_flag=True,
    default=False,
)
def deploy(params_filepath, env_file, record_filepath, autosign):
    """Declare the StakeStark classes and deploy the protocol contract."""
    env_file = env_file or find_dotenv(usecwd=True)
    if env_file:
        load_dotenv(env_file)

    try:
        run_deployment(
            params_filepath=params_filepath,
            environ=os.environ,
            autosign=autosign,
            record_filepath=record_filepath,
        )
    except DeploymentError as e:
        raise click.ClickException(str(e)) from e


@click.command()
@click.argument(
    "record_filepath",
    type=click.Path(dir_okay=False, exists=True, path_type=Path),
)
def show(record_filepath):
    """Print a persisted deployment record."""
    try:
        record = read_record(record_filepath)
    except DeploymentError as e:
        raise click.ClickException(str(e)) from e

    print(f"Chain ID: {record.chain_id}", f"Deployer: {record.deployer}", sep="\n")
    for name, class_hash in record.class_hashes.items():
        print(f"{name} Class Hash: {class_hash}")
    print(f"StakeStark: {record.protocol_address} (tx {record.tx_hash})")
    print(f"LST: {record.lst_address}")
    for index, address in enumerate(record.delegator_addresses):
        print(f"Delegator[{index}]: {address}")


if __name__ == "__main__":
    deploy()
