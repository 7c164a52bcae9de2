from collections import OrderedDict

import click

from deployment.utils import to_hex_address


def _pretty(value) -> str:
    if isinstance(value, list):
        return "[" + ", ".join(_pretty(item) for item in value) + "]"
    # addresses and hashes read better in hex, fees and periods in decimal
    if value < 2**64:
        return str(value)
    return to_hex_address(value)


def _continue() -> None:
    """Asks the user to continue; aborts the run on refusal."""
    click.confirm("Continue?", default=True, abort=True)


def _confirm_declaration(contract_name: str) -> None:
    click.confirm(f"Declare {contract_name}?", default=True, abort=True)


def _confirm_resolution(resolved_params: OrderedDict, contract_name: str) -> None:
    """Shows the resolved constructor parameters for a contract and asks to deploy it."""
    if not resolved_params:
        print(f"\n(i) No constructor parameters for {contract_name}")
    else:
        print(f"\nConstructor parameters for {contract_name}")
        for name, value in resolved_params.items():
            print(f"\t{name}={_pretty(value)}")

    click.confirm(f"Deploy {contract_name}?", default=True, abort=True)

    zero_params = [name for name, value in resolved_params.items() if value == 0]
    if zero_params:
        click.confirm(
            f"Zero value detected for {', '.join(zero_params)}; continue?",
            default=False,
            abort=True,
        )
