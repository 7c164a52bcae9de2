import typing
from abc import ABC, abstractmethod
from collections import OrderedDict
from pathlib import Path
from typing import Any, Dict, List, NamedTuple, Optional

from deployment.artifacts import ABI, ContractArtifact, abi_has_function, load_artifacts
from deployment.config import DeploymentConfig
from deployment.confirm import _confirm_declaration, _confirm_resolution, _continue
from deployment.constants import FIELD_PRIME, U256_BOUND
from deployment.exceptions import ParametersError, QueryError
from deployment.networks import StarknetNetwork
from deployment.registry import DeploymentRecord, write_record
from deployment.utils import Felt, parse_felt, rpc_host, to_hex_address, validate_params

CONTRACT_CONSTRUCTOR_PARAMETER_KEY = "constructor"
SMALL_INTEGER_TYPES = ("u8", "u16", "u32", "u64", "u128")


class VariableContext:
    """Names a constructor variable may refer to while a parameters file is parsed."""

    def __init__(
        self,
        contract_name: str,
        declared_names: List[str],
        setting_names: List[str],
    ):
        self.contract_name = contract_name
        self.declared_names = declared_names or list()
        self.setting_names = setting_names or list()


class ResolutionContext(NamedTuple):
    """Values known at deployment time."""

    deployer_address: Felt
    settings: Dict[str, Felt]
    class_hashes: Dict[str, Felt]


# Variables


class Variable(ABC):
    VARIABLE_PREFIX = "$"

    @abstractmethod
    def resolve(self, context: ResolutionContext) -> Felt:
        raise NotImplementedError

    @classmethod
    def is_variable(cls, param: Any) -> bool:
        """Returns True if the param is a variable."""
        return isinstance(param, str) and param.startswith(cls.VARIABLE_PREFIX)


class DeployerAccount(Variable):
    DEPLOYER_INDICATOR = "deployer"

    @classmethod
    def is_deployer(cls, value: str) -> bool:
        return value == cls.DEPLOYER_INDICATOR

    def resolve(self, context: ResolutionContext) -> Felt:
        return context.deployer_address


class Setting(Variable):
    """A value taken from the deployment environment, e.g. $ADMIN_ADDRESS."""

    def __init__(self, setting_name: str, context: VariableContext):
        if setting_name not in context.setting_names:
            raise ConstructorParameters.Invalid(
                f"Setting '{setting_name}' used by {context.contract_name} is not configured."
            )
        self.setting_name = setting_name

    @classmethod
    def is_setting(cls, value: str) -> bool:
        return value.isupper()

    def resolve(self, context: ResolutionContext) -> Felt:
        return context.settings[self.setting_name]


class ClassHash(Variable):
    """The class hash of a declared contract, e.g. $Delegator."""

    def __init__(self, contract_name: str, context: VariableContext):
        if contract_name not in context.declared_names:
            raise ConstructorParameters.Invalid(
                f"Contract '{contract_name}' used by {context.contract_name} is not declared."
            )
        self.contract_name = contract_name

    def resolve(self, context: ResolutionContext) -> Felt:
        try:
            return context.class_hashes[self.contract_name]
        except KeyError:
            raise ConstructorParameters.Invalid(
                f"{self.contract_name} must be declared before its class hash is used."
            )


def _variable_from_value(variable: str, context: VariableContext) -> Variable:
    variable = variable[len(Variable.VARIABLE_PREFIX) :]
    if DeployerAccount.is_deployer(variable):
        return DeployerAccount()
    elif Setting.is_setting(variable):
        return Setting(variable, context)
    else:
        return ClassHash(variable, context)


def _process_raw_value(value: Any, context: VariableContext) -> Any:
    if isinstance(value, list):
        return [_process_raw_value(v, context) for v in value]

    if Variable.is_variable(value):
        return _variable_from_value(value, context)

    try:
        return parse_felt(value)
    except ValueError as e:
        raise ConstructorParameters.Invalid(
            f"Literal constructor value for {context.contract_name} is invalid: {e}"
        )


def _process_raw_values(values: typing.Dict, context: VariableContext) -> OrderedDict:
    processed_parameters = OrderedDict()
    for name, value in values.items():
        processed_parameters[name] = _process_raw_value(value, context)
    return processed_parameters


def _resolve_param(value: Any, context: ResolutionContext) -> Any:
    """Resolves a single parameter value or a list of parameter values."""
    if isinstance(value, list):
        return [_resolve_param(v, context) for v in value]

    if isinstance(value, Variable):
        return value.resolve(context)

    return value  # literally a value


def _resolve_params(parameters: OrderedDict, context: ResolutionContext) -> OrderedDict:
    resolved_parameters = OrderedDict()
    for name, value in parameters.items():
        resolved_parameters[name] = _resolve_param(value, context)
    return resolved_parameters


def _get_contract_entries(params: typing.Dict) -> List[typing.Tuple[str, typing.Dict]]:
    entries = list()
    for contract_info in params["contracts"]:
        if isinstance(contract_info, str):
            entries.append((contract_info, dict()))
        elif isinstance(contract_info, dict) and len(contract_info) == 1:
            contract_name, contract_data = list(contract_info.items())[0]  # only one entry
            contract_data = contract_data or dict()
            if not isinstance(contract_data, dict):
                raise ParametersError(f"Malformed parameters for {contract_name}.")
            entries.append((contract_name, contract_data))
        else:
            raise ParametersError("Malformed contracts entry in parameters YAML.")
    return entries


def _value_bound(abi_type: str) -> int:
    """Returns the exclusive upper bound of a Cairo scalar type; felt-sized types use the prime."""
    type_name = abi_type.rpartition("::")[2]
    if type_name == "u256":
        return U256_BOUND
    if type_name == "bool":
        return 2
    if type_name in SMALL_INTEGER_TYPES:
        return 2 ** int(type_name[1:])
    return FIELD_PRIME


def _validate_constructor_abi_inputs(
    contract_name: str, abi_inputs: List[Dict], parameters: OrderedDict
) -> None:
    """Validates constructor parameter names and order against the constructor ABI."""
    if len(parameters) != len(abi_inputs):
        raise ConstructorParameters.Invalid(
            f"Constructor parameters length mismatch - "
            f"{contract_name} ABI requires {len(abi_inputs)}, Got {len(parameters)}."
        )

    codex = enumerate(zip(abi_inputs, parameters), start=0)
    for position, (abi_input, name) in codex:
        if abi_input["name"] != name:
            raise ConstructorParameters.Invalid(
                f"{contract_name} constructor parameter '{name}' at position {position} does not "
                f"match the expected ABI name '{abi_input['name']}'."
            )


def _validate_constructor_values(
    contract_name: str, abi_inputs: List[Dict], resolved_parameters: OrderedDict
) -> None:
    for abi_input, (name, value) in zip(abi_inputs, resolved_parameters.items()):
        values = value if isinstance(value, list) else [value]
        bound = _value_bound(abi_input.get("type", ""))
        for item in values:
            if isinstance(item, bool) or not isinstance(item, int) or not 0 <= item < bound:
                raise ConstructorParameters.Invalid(
                    f"{contract_name} constructor param '{name}' has a value '{item}' "
                    f"that does not fit ABI type '{abi_input.get('type')}'."
                )


class ConstructorParameters:
    """Ordered constructor parameters for the contracts of a deployment."""

    class Invalid(ParametersError):
        """Raised when the constructor parameters are invalid"""

    def __init__(self, parameters: OrderedDict, artifacts: Dict[str, ContractArtifact]):
        self.parameters = parameters
        self.abi_inputs = dict()
        for contract_name, contract_parameters in parameters.items():
            try:
                artifact = artifacts[contract_name]
            except KeyError:
                raise self.Invalid(f"No declared artifact for contract '{contract_name}'.")
            self.abi_inputs[contract_name] = artifact.constructor_inputs
            _validate_constructor_abi_inputs(
                contract_name=contract_name,
                abi_inputs=self.abi_inputs[contract_name],
                parameters=contract_parameters,
            )

    @classmethod
    def from_params(
        cls,
        params: typing.Dict,
        artifacts: Dict[str, ContractArtifact],
        setting_names: List[str],
    ) -> "ConstructorParameters":
        print("Processing contract constructor parameters...")
        parameters = OrderedDict()
        declared_names = list(artifacts)
        for contract_name, contract_data in _get_contract_entries(params):
            raw_values = contract_data.get(CONTRACT_CONSTRUCTOR_PARAMETER_KEY) or dict()
            if not isinstance(raw_values, dict):
                raise cls.Invalid(f"Malformed constructor parameters for {contract_name}.")
            context = VariableContext(
                contract_name=contract_name,
                declared_names=declared_names,
                setting_names=setting_names,
            )
            parameters[contract_name] = _process_raw_values(raw_values, context)
        return cls(parameters=parameters, artifacts=artifacts)

    def resolve(self, contract_name: str, context: ResolutionContext) -> OrderedDict:
        """Resolves and type-checks the constructor parameters for a single contract."""
        try:
            parameters = self.parameters[contract_name]
        except KeyError:
            raise self.Invalid(f"No constructor parameters for {contract_name}.")
        resolved_params = _resolve_params(parameters, context)
        _validate_constructor_values(
            contract_name=contract_name,
            abi_inputs=self.abi_inputs[contract_name],
            resolved_parameters=resolved_params,
        )
        return resolved_params


class DeployedContract(NamedTuple):
    name: str
    address: Felt
    abi: ABI
    tx_hash: Felt


class Transactor:
    """
    Represents the deployer account on a Starknet network plus confirmed transaction execution.
    """

    def __init__(self, network: StarknetNetwork, autosign: bool = False):
        self.network = network
        if autosign:
            print("WARNING: Autosign is enabled. Transactions will be signed automatically.")
        self._autosign = autosign

    def get_account_address(self) -> Felt:
        return self.network.account_address

    def _wait(self, tx_hash: Felt) -> None:
        print(f"Waiting for transaction {to_hex_address(tx_hash)}...")
        self.network.wait_for_tx(tx_hash)

    def call(self, contract: DeployedContract, function_name: str) -> Any:
        """Runs a read-only call against a deployed contract."""
        if not abi_has_function(contract.abi, function_name):
            raise QueryError(f"{contract.name} has no function '{function_name}'.")
        return self.network.call(contract.address, contract.abi, function_name)


class Deployer(Transactor):
    """
    Represents the deployer account plus the declaration and
    deployment parameters of a revision, plus validated/annotated execution.
    """

    def __init__(
        self,
        params: typing.Dict,
        path: Path,
        network: StarknetNetwork,
        config: DeploymentConfig,
        autosign: bool = False,
        record_filepath: Optional[Path] = None,
        artifacts_dir: Path = Path("."),
    ):
        super().__init__(network, autosign)

        self.path = path
        self.params = params
        self.record_filepath = validate_params(params=params)
        if record_filepath is not None:
            self.record_filepath = record_filepath
        self.config = config
        self.chain_name = self._check_chain()

        self.artifacts = load_artifacts(params["declarations"], base_dir=artifacts_dir)
        self.constructor_parameters = ConstructorParameters.from_params(
            params, artifacts=self.artifacts, setting_names=list(config.as_settings())
        )
        self.class_hashes = OrderedDict()

        self._print_deployment_info()

        if not self._autosign:
            # Confirms the start of the deployment.
            _continue()

    def _check_chain(self) -> str:
        expected_chain = self.params["deployment"]["chain_id"]
        chain_name = self.network.chain_name
        if chain_name != expected_chain:
            raise ParametersError(
                f"chain_id in params file ({expected_chain}) does not match "
                f"chain_id of current network ({chain_name})."
            )
        return chain_name

    def _resolution_context(self) -> ResolutionContext:
        return ResolutionContext(
            deployer_address=self.get_account_address(),
            settings=self.config.as_settings(),
            class_hashes=dict(self.class_hashes),
        )

    def check(self, contract_name: str) -> None:
        """
        Resolves the constructor parameters of a contract against locally computed
        class hashes so that out-of-range values fail before any transaction.
        """
        class_hashes = {
            name: self.network.compute_class_hash(artifact)
            for name, artifact in self.artifacts.items()
        }
        context = self._resolution_context()._replace(class_hashes=class_hashes)
        self.constructor_parameters.resolve(contract_name, context)

    def declare(self, contract_name: str) -> Felt:
        """Declares a contract class unless the network already knows it."""
        artifact = self.artifacts[contract_name]
        class_hash = self.network.compute_class_hash(artifact)
        if self.network.is_declared(class_hash):
            print(f"(i) {contract_name} is already declared")
        else:
            print(f"\nDeclaring {contract_name} from {artifact.sierra_filepath}")
            if not self._autosign:
                _confirm_declaration(contract_name)
            submission = self.network.declare(artifact)
            self._wait(submission.tx_hash)
            class_hash = submission.class_hash

        print(f"{contract_name} Class Hash: {to_hex_address(class_hash)}")
        self.class_hashes[contract_name] = class_hash
        return class_hash

    def declare_all(self) -> Dict[str, Felt]:
        """Declares every contract of the revision in parameters file order."""
        for contract_name in self.artifacts:
            self.declare(contract_name)
        return OrderedDict(self.class_hashes)

    def deploy(self, contract_name: str) -> DeployedContract:
        try:
            class_hash = self.class_hashes[contract_name]
        except KeyError:
            raise ConstructorParameters.Invalid(
                f"{contract_name} must be declared before it is deployed."
            )

        resolved_params = self.constructor_parameters.resolve(
            contract_name, self._resolution_context()
        )
        if not self._autosign:
            _confirm_resolution(resolved_params, contract_name)

        artifact = self.artifacts[contract_name]
        submission = self.network.deploy(
            class_hash=class_hash,
            abi=artifact.abi,
            constructor_args=list(resolved_params.values()),
        )
        self._wait(submission.tx_hash)
        print(f"{contract_name} deployed at: {to_hex_address(submission.address)}")

        return DeployedContract(
            name=contract_name,
            address=submission.address,
            abi=artifact.abi,
            tx_hash=submission.tx_hash,
        )

    def finalize(self, record: DeploymentRecord) -> Path:
        """Persists the deployment record."""
        return write_record(record=record, filepath=self.record_filepath)

    def _print_deployment_info(self):
        print(
            f"Account: {to_hex_address(self.get_account_address())}",
            f"Params: {self.path}",
            f"Record: {self.record_filepath}",
            f"RPC: {rpc_host(self.network.rpc_url)}",
            f"Chain ID: {self.chain_name}",
            f"Contracts: {', '.join(self.artifacts)}",
            sep="\n",
        )
