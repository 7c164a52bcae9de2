import typing
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

from deployment.constants import REQUIRED_ENVIRONMENT, SECRET_ENVIRONMENT, TUNABLE_ENVIRONMENT
from deployment.exceptions import ParametersError
from deployment.utils import Felt, parse_felt


@dataclass(frozen=True)
class DeploymentConfig:
    """Network credentials and protocol settings for a single deployment run."""

    class Invalid(ParametersError):
        """Raised when the environment does not describe a complete deployment"""

    rpc_url: str
    account_address: Felt
    private_key: Felt = field(repr=False)
    strk_token: Felt
    pool_contract: Felt
    platform_fee_recipient: Felt
    admin: Felt
    operator: Felt
    platform_fee: int
    withdrawal_window_period: int
    initial_delegator_count: Optional[int] = None

    @classmethod
    def from_environ(
        cls, environ: Mapping[str, str], constants: typing.Dict[str, typing.Any] = None
    ) -> "DeploymentConfig":
        """
        Builds the configuration from environment variables. Tunable protocol settings
        fall back to the revision constants when the environment does not set them.
        Every missing or malformed variable is reported at once.
        """
        constants = constants or dict()
        values = dict()
        missing, malformed = list(), list()

        for attribute, envvar in REQUIRED_ENVIRONMENT.items():
            raw_value = environ.get(envvar)
            if raw_value is None or not raw_value.strip():
                missing.append(envvar)
                continue
            if attribute == "rpc_url":
                values[attribute] = raw_value.strip()
                continue
            try:
                values[attribute] = parse_felt(raw_value)
            except ValueError:
                malformed.append(envvar)

        for attribute, envvar in TUNABLE_ENVIRONMENT.items():
            raw_value = environ.get(envvar) or constants.get(envvar)
            if raw_value is None:
                if attribute != "initial_delegator_count":
                    missing.append(envvar)
                continue
            try:
                values[attribute] = parse_felt(raw_value)
            except ValueError:
                malformed.append(envvar)

        if missing or malformed:
            problems = list()
            if missing:
                problems.append(f"missing {', '.join(missing)}")
            if malformed:
                problems.append(f"malformed {', '.join(malformed)}")
            raise cls.Invalid(f"Invalid deployment environment: {'; '.join(problems)}.")

        return cls(**values)

    def as_settings(self) -> Dict[str, Felt]:
        """Returns the non-secret settings keyed by their environment variable name."""
        environment = {**REQUIRED_ENVIRONMENT, **TUNABLE_ENVIRONMENT}
        settings = dict()
        for attribute, envvar in environment.items():
            if envvar in SECRET_ENVIRONMENT:
                continue
            value = getattr(self, attribute)
            if value is not None:
                settings[envvar] = value
        return settings
