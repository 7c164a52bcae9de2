from pathlib import Path

import deployment

#
# Filesystem
#

DEPLOYMENT_DIR = Path(deployment.__file__).parent
CONSTRUCTOR_PARAMS_DIR = DEPLOYMENT_DIR / "constructor_params"
ARTIFACTS_DIR = Path("deployments")

SIERRA_SUFFIX = ".contract_class.json"
CASM_SUFFIX = ".compiled_contract_class.json"

DEFAULT_PARAMS_FILEPATH = CONSTRUCTOR_PARAMS_DIR / "sepolia" / "stakestark.yml"

#
# Networks
#

SN_MAIN = "SN_MAIN"
SN_SEPOLIA = "SN_SEPOLIA"

SUPPORTED_CHAINS = [SN_MAIN, SN_SEPOLIA]

# JSON-RPC error code for an unknown class hash
CLASS_HASH_NOT_FOUND = 28

#
# Felts
#

FIELD_PRIME = 2**251 + 17 * 2**192 + 1
U256_BOUND = 2**256

#
# Contracts
#

LST = "stSTRK"
PROTOCOL = "StakeStark"
DELEGATOR = "Delegator"

STAKESTARK_CONTRACTS = [LST, PROTOCOL, DELEGATOR]

GET_LST_ADDRESS = "get_lst_address"
GET_DELEGATORS_ADDRESS = "get_delegators_address"

#
# Environment
#

# DeploymentConfig field -> environment variable
REQUIRED_ENVIRONMENT = {
    "rpc_url": "RPC_URL",
    "account_address": "ACCOUNT_ADDRESS",
    "private_key": "PRIVATE_KEY",
    "strk_token": "STRK_TOKEN_ADDRESS",
    "pool_contract": "POOL_CONTRACT_ADDRESS",
    "platform_fee_recipient": "PLATFORM_FEE_RECIPIENT",
    "admin": "ADMIN_ADDRESS",
    "operator": "OPERATOR_ADDRESS",
}

# optional overrides of the revision constants of the same name
TUNABLE_ENVIRONMENT = {
    "platform_fee": "PLATFORM_FEE",
    "withdrawal_window_period": "WITHDRAWAL_WINDOW_PERIOD",
    "initial_delegator_count": "INITIAL_DELEGATOR_COUNT",
}

# never exposed to constructor parameters
SECRET_ENVIRONMENT = ["RPC_URL", "PRIVATE_KEY"]
