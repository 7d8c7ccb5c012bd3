"""
Deployment Script for the Event Creator contract

This script deploys the compiled EventCreator application to an Algorand
network, seeds its account with the base minimum balance, and records
the app ID.
Run with: python scripts/deploy.py

Build the contract first:
   python scripts/build.py

Environment variables:
- NETWORK: localnet | testnet | mainnet (default: localnet)
- ALGOD_SERVER: Algorand node URL
- ALGOD_TOKEN: Algorand node token
- DEPLOYER_MNEMONIC: 25-word mnemonic for deployer account (required off localnet)
- APP_FUNDING_ALGO: ALGO sent to the app account for its base minimum
  balance (default: 0.1). Event box storage is paid by each organizer.
- BUILD_DIR: Directory holding the compiled TEAL (default: build)
"""

import os
import json
import base64
from decimal import Decimal, InvalidOperation
from pathlib import Path
from dotenv import load_dotenv
from algosdk import abi, account, logic, mnemonic, transaction
from algosdk.v2client import algod

# Load environment variables
load_dotenv()


CONTRACT_NAME = "EventCreator"

# ARC-4 create method (see contracts/event_creator/contract.py)
CREATE_METHOD = abi.Method.from_signature("create()void")

# Global state: event_count
GLOBAL_INTS = 1
GLOBAL_BYTES = 0

NETWORKS = {
    "localnet": {
        "algod_server": "http://localhost:4001",
        "algod_token": "a" * 64,
        "explorer": None,
    },
    "testnet": {
        "algod_server": "https://testnet-api.algonode.cloud",
        "algod_token": "",
        "explorer": "https://testnet.explorer.perawallet.app",
    },
    "mainnet": {
        "algod_server": "https://mainnet-api.algonode.cloud",
        "algod_token": "",
        "explorer": "https://explorer.perawallet.app",
    },
}

# Largest program size the AVM accepts (base page + 3 extra pages)
PAGE_SIZE = 2048
MAX_EXTRA_PAGES = 3

MICROALGOS_PER_ALGO = 1_000_000


def algo_to_microalgo(value: str) -> int:
    """
    Convert a decimal ALGO amount to microALGOs without float rounding.

    Raises:
        ValueError: If the amount is not a number, is negative, or has
            more than six decimal places
    """
    try:
        amount = Decimal(value.strip()) * MICROALGOS_PER_ALGO
    except InvalidOperation:
        raise ValueError(f"Invalid ALGO amount '{value}'") from None

    if not amount.is_finite() or amount < 0:
        raise ValueError(f"Invalid ALGO amount '{value}'")
    if amount != amount.to_integral_value():
        raise ValueError(f"ALGO amount '{value}' is finer than one microALGO")

    return int(amount)


def load_config() -> dict:
    """
    Read deployment settings from the environment.

    Raises:
        ValueError: On an unknown network or missing credentials
    """
    network = os.getenv("NETWORK", "localnet")
    if network not in NETWORKS:
        raise ValueError(f"Unknown NETWORK '{network}'. Use one of: {', '.join(NETWORKS)}")

    defaults = NETWORKS[network]
    deployer_mnemonic = os.getenv("DEPLOYER_MNEMONIC")

    if network != "localnet" and not deployer_mnemonic:
        raise ValueError("Missing required environment variables: DEPLOYER_MNEMONIC")

    return {
        "network": network,
        "algod_server": os.getenv("ALGOD_SERVER", defaults["algod_server"]),
        "algod_token": os.getenv("ALGOD_TOKEN", defaults["algod_token"]),
        "deployer_mnemonic": deployer_mnemonic,
        "app_funding_microalgo": algo_to_microalgo(os.getenv("APP_FUNDING_ALGO", "0.1")),
        "build_dir": Path(os.getenv("BUILD_DIR", "build")),
    }


def get_algod_client(config: dict) -> algod.AlgodClient:
    """Create Algorand client from the deployment config."""
    return algod.AlgodClient(config["algod_token"], config["algod_server"])


def get_deployer_account(config: dict) -> tuple[str, str]:
    """Get deployer account from mnemonic."""
    mnemonic_phrase = config["deployer_mnemonic"]

    if not mnemonic_phrase:
        # Only reachable on localnet (load_config enforces this)
        print("Warning: No DEPLOYER_MNEMONIC set. Using generated account for localnet.")
        private_key, address = account.generate_account()
        return private_key, address

    private_key = mnemonic.to_private_key(mnemonic_phrase)
    address = account.address_from_private_key(private_key)

    return private_key, address


def explorer_url(network: str, app_id: int) -> str | None:
    """Block explorer link for a deployed application, if the network has one."""
    explorer = NETWORKS[network]["explorer"]
    if explorer is None:
        return None
    return f"{explorer}/application/{app_id}"


def extra_pages_for(approval_program: bytes, clear_program: bytes) -> int:
    """Number of extra program pages needed for the compiled programs."""
    total = len(approval_program) + len(clear_program)
    extra = max(0, (total - 1) // PAGE_SIZE)
    if extra > MAX_EXTRA_PAGES:
        raise ValueError(f"Compiled programs are too large: {total} bytes")
    return extra


def compile_teal(client: algod.AlgodClient, source: str) -> bytes:
    """Compile TEAL source code using the Algorand node."""
    response = client.compile(source)
    return base64.b64decode(response["result"])


def read_programs(build_dir: Path) -> tuple[str, str]:
    """Load the approval and clear TEAL produced by scripts/build.py."""
    approval_file = build_dir / f"{CONTRACT_NAME}.approval.teal"
    clear_file = build_dir / f"{CONTRACT_NAME}.clear.teal"

    for path in (approval_file, clear_file):
        if not path.exists():
            raise FileNotFoundError(f"{path} not found. Run: python scripts/build.py")

    return approval_file.read_text(), clear_file.read_text()


def deploy_contract(
    client: algod.AlgodClient,
    private_key: str,
    sender: str,
    approval_program: bytes,
    clear_program: bytes,
) -> tuple[int, str]:
    """Deploy the application via its ARC-4 create method and return (app_id, tx_id)."""
    params = client.suggested_params()

    txn = transaction.ApplicationCreateTxn(
        sender=sender,
        sp=params,
        on_complete=transaction.OnComplete.NoOpOC,
        approval_program=approval_program,
        clear_program=clear_program,
        global_schema=transaction.StateSchema(GLOBAL_INTS, GLOBAL_BYTES),
        local_schema=transaction.StateSchema(0, 0),
        app_args=[CREATE_METHOD.get_selector()],
        extra_pages=extra_pages_for(approval_program, clear_program),
    )

    signed_txn = txn.sign(private_key)
    tx_id = client.send_transaction(signed_txn)

    # Wait for confirmation
    result = transaction.wait_for_confirmation(client, tx_id, 4)
    app_id = result["application-index"]

    return app_id, tx_id


def fund_app_account(
    client: algod.AlgodClient,
    private_key: str,
    sender: str,
    app_id: int,
    amount_microalgo: int,
) -> str:
    """
    Seed the application account with its base minimum balance.

    Box storage for each event is deposited by the organizer in the
    create_event group, and payout fees are pooled by the caller, so the
    seed does not shrink as events are created.
    """
    params = client.suggested_params()

    txn = transaction.PaymentTxn(
        sender=sender,
        sp=params,
        receiver=logic.get_application_address(app_id),
        amt=amount_microalgo,
        note=b"event-creator-app-funding",
    )

    signed_txn = txn.sign(private_key)
    tx_id = client.send_transaction(signed_txn)
    transaction.wait_for_confirmation(client, tx_id, 4)

    return tx_id


def main():
    """Main deployment function."""
    print("=" * 60)
    print("Event Creator - Smart Contract Deployment")
    print("=" * 60)

    config = load_config()
    network = config["network"]
    print(f"\nNetwork: {network}")

    # Initialize client
    client = get_algod_client(config)

    # Get deployer account
    private_key, deployer = get_deployer_account(config)
    print(f"Deployer: {deployer}")

    # Check balance
    try:
        account_info = client.account_info(deployer)
        balance = account_info["amount"]
        print(f"Balance: {balance / MICROALGOS_PER_ALGO:.6f} ALGO")

        if balance < MICROALGOS_PER_ALGO + config["app_funding_microalgo"]:
            print("\nWarning: Low balance. Fund your account before deploying.")
            if network == "localnet":
                print("Run: algokit goal clerk send -a 10000000 -f <dispenser> -t " + deployer)
    except Exception as e:
        print(f"Could not check balance: {e}")

    print("\n" + "-" * 60)
    print("Contract Deployment")
    print("-" * 60)

    approval_source, clear_source = read_programs(config["build_dir"])

    print(f"\n1. Compiling {CONTRACT_NAME}...")
    approval_program = compile_teal(client, approval_source)
    clear_program = compile_teal(client, clear_source)
    print(f"   Approval: {len(approval_program)} bytes, Clear: {len(clear_program)} bytes")

    print("\n2. Creating application...")
    app_id, tx_id = deploy_contract(client, private_key, deployer, approval_program, clear_program)
    print(f"   Transaction ID: {tx_id}")
    print(f"   ✅ Deployed! App ID: {app_id}")

    funding = config["app_funding_microalgo"]
    print(f"\n3. Funding app account with {funding / MICROALGOS_PER_ALGO:.6f} ALGO...")
    funding_tx_id = fund_app_account(client, private_key, deployer, app_id, funding)
    print(f"   Transaction ID: {funding_tx_id}")

    app_address = logic.get_application_address(app_id)
    url = explorer_url(network, app_id)

    print("\n" + "=" * 60)
    print("Deployment Summary")
    print("=" * 60)
    print(f"\n{CONTRACT_NAME}:")
    print(f"   App ID: {app_id}")
    print(f"   App Address: {app_address}")
    if url:
        print(f"   Explorer: {url}")

    # Save deployment info
    output_path = Path("deployment.json")
    deployment_info = {
        "network": network,
        "deployer": deployer,
        "contracts": {
            CONTRACT_NAME: {
                "app_id": app_id,
                "app_address": app_address,
                "tx_id": tx_id,
            },
        },
    }

    with open(output_path, "w") as f:
        json.dump(deployment_info, f, indent=2)

    print(f"\nDeployment info saved to: {output_path}")
    print(f"\nAdd this to your .env file:\n   EVENT_CREATOR_APP_ID={app_id}")


if __name__ == "__main__":
    main()
