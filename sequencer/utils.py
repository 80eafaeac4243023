import os
from pathlib import Path
from typing import Dict, Optional

import yaml
from ape import networks, project
from ape.api.networks import LOCAL_NETWORK_NAME
from ape.contracts import ContractContainer

from sequencer.constants import ARTIFACTS_DIR, DEFAULT_ADDRESS_FILENAME
from sequencer.errors import DeploymentConfigError


def _load_yaml(filepath: Path) -> dict:
    """Loads a YAML file."""
    with open(filepath, "r") as file:
        return yaml.safe_load(file)


def is_local_network() -> bool:
    return networks.provider.network.name == LOCAL_NETWORK_NAME


def get_artifact_filepath(config: Dict, base_dir: Optional[Path] = None) -> Path:
    """
    Returns the filepath the address map is written to.
    A relative 'dir' is taken relative to the params file directory.
    """
    artifact_config = config.get("artifacts") or dict()
    artifact_dir = Path(artifact_config.get("dir", ARTIFACTS_DIR))
    if not artifact_dir.is_absolute() and base_dir is not None:
        artifact_dir = base_dir / artifact_dir
    filename = artifact_config.get("filename", DEFAULT_ADDRESS_FILENAME)
    return artifact_dir / filename


def validate_config(config: Dict, base_dir: Optional[Path] = None) -> Path:
    """
    Checks the params file is complete and targets the connected network.
    Returns the address map filepath.
    """
    print("Validating parameters YAML...")

    contracts = config.get("contracts")
    if not contracts:
        raise DeploymentConfigError("Constructor parameters file missing 'contracts' field.")

    deployment = config.get("deployment") or dict()
    config_chain_id = deployment.get("chain_id")
    if config_chain_id is not None:
        config_chain_id = int(config_chain_id)
        chain_mismatch = config_chain_id != networks.provider.network.chain_id
        if chain_mismatch and not is_local_network():
            raise DeploymentConfigError(
                f"chain_id in params file ({config_chain_id}) does not match "
                f"chain_id of current network ({networks.provider.network.chain_id})."
            )

    return get_artifact_filepath(config=config, base_dir=base_dir)


def check_etherscan_plugin() -> None:
    """
    Checks that the ape-etherscan plugin is installed and that
    the appropriate API key environment variable is set.
    """
    if is_local_network():
        # unnecessary for local deployment
        return
    try:
        from ape_etherscan.utils import API_KEY_ENV_KEY_MAP
    except ImportError:
        raise ImportError("Please install the ape-etherscan plugin to verify contracts.")
    ecosystem_name = networks.provider.network.ecosystem.name
    explorer_envvar = API_KEY_ENV_KEY_MAP.get(ecosystem_name)
    api_key = os.environ.get(explorer_envvar)
    if not api_key:
        raise ValueError(f"{explorer_envvar} is not set.")


def verify_contracts(addresses: Dict[str, str]) -> None:
    """Publishes the source of confirmed deployments to the network's block explorer."""
    explorer = networks.provider.network.explorer
    if explorer is None:
        print("(i) No block explorer configured for this network; skipping verification.")
        return
    for name, address in addresses.items():
        print(f"(i) Verifying {name} at {address}...")
        explorer.publish_contract(address)


def _get_dependency_contract_container(contract: str) -> ContractContainer:
    for dependency_name, dependency_versions in project.dependencies.items():
        if len(dependency_versions) > 1:
            raise ValueError(f"Ambiguous {dependency_name} dependency for {contract}")
        try:
            dependency_api = list(dependency_versions.values())[0]
            contract_container = getattr(dependency_api, contract)
            return contract_container
        except AttributeError:
            continue
    raise ValueError(f"No contract found with name '{contract}'.")


def get_contract_container(contract: str) -> ContractContainer:
    try:
        contract_container = getattr(project, contract)
    except AttributeError:
        # not in root project; check dependencies
        contract_container = _get_dependency_contract_container(contract)

    return contract_container