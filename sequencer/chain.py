import typing
from abc import ABC, abstractmethod
from typing import Any, List, NamedTuple, Optional

from ape import networks
from ape.api import AccountAPI, ReceiptAPI
from ape.cli.choices import select_account
from ape.contracts import ContractContainer
from ape.exceptions import ApeException
from eth_typing import ChecksumAddress
from eth_utils import to_checksum_address

from sequencer.errors import ArtifactNotFoundError, ConfirmationError, SubmissionError
from sequencer.utils import get_contract_container


class Artifact(NamedTuple):
    """A deployable build output: bytecode, ABI and the constructor schema."""

    name: str
    abi: List[dict]
    bytecode: Optional[str] = None
    # list of {"name": ..., "type": ...}; None when the schema is not known
    constructor_inputs: Optional[List[dict]] = None
    container: Any = None


class DeploymentHandle(NamedTuple):
    unit_name: str
    txn_hash: Optional[str] = None
    receipt: Any = None


class ArtifactSource(ABC):
    @abstractmethod
    def get_artifact(self, name: str) -> Artifact:
        """Returns the artifact for a contract identifier or raises ArtifactNotFoundError."""
        raise NotImplementedError


class ChainBackend(ABC):
    @abstractmethod
    def submit_deployment(
        self, artifact: Artifact, args: typing.Sequence[Any], unit_name: str
    ) -> DeploymentHandle:
        """Submits a deployment transaction or raises SubmissionError."""
        raise NotImplementedError

    @abstractmethod
    def await_confirmation(self, handle: DeploymentHandle) -> ChecksumAddress:
        """
        Blocks until the deployment is confirmed and returns the contract address,
        or raises ConfirmationError. Timeout and retry policy belongs to the backend.
        """
        raise NotImplementedError


#
# Ape
#


def _get_constructor_inputs(container: ContractContainer) -> List[dict]:
    constructor_abi = container.contract_type.constructor
    if constructor_abi is None:
        return list()
    return [
        {"name": abi_input.name, "type": abi_input.canonical_type}
        for abi_input in constructor_abi.inputs
    ]


class ApeArtifactSource(ArtifactSource):
    """Looks up compiled contracts in the ape project and its dependencies."""

    def get_artifact(self, name: str) -> Artifact:
        try:
            container = get_contract_container(name)
        except ValueError as e:
            raise ArtifactNotFoundError(unit_name=name, message=str(e))

        contract_type = container.contract_type
        bytecode = None
        if contract_type.deployment_bytecode is not None:
            bytecode = contract_type.deployment_bytecode.bytecode
        return Artifact(
            name=name,
            abi=[entry.model_dump(by_alias=True) for entry in contract_type.abi],
            bytecode=bytecode,
            constructor_inputs=_get_constructor_inputs(container),
            container=container,
        )


class ApeChainBackend(ChainBackend):
    """
    Represents an ape account submitting contract deployments.
    Submission returns once the transaction is included; confirmation waits for the
    network's required confirmations.
    """

    def __init__(
        self,
        account: Optional[AccountAPI] = None,
        autosign: bool = False,
        required_confirmations: Optional[int] = None,
    ):
        if account is None:
            self._account = select_account()
        else:
            self._account = account
        if autosign:
            print("WARNING: Autosign is enabled. Transactions will be signed automatically.")
        self._account.set_autosign(autosign)
        self._required_confirmations = required_confirmations

    def get_account(self) -> AccountAPI:
        return self._account

    @property
    def required_confirmations(self) -> int:
        if self._required_confirmations is not None:
            return self._required_confirmations
        return networks.provider.network.required_confirmations

    def submit_deployment(
        self, artifact: Artifact, args: typing.Sequence[Any], unit_name: str
    ) -> DeploymentHandle:
        container = artifact.container
        if container is None:
            raise SubmissionError(unit_name, f"No deployable container for {artifact.name}")
        try:
            txn = container.constructor.serialize_transaction(*args, required_confirmations=0)
            receipt = self._account.call(txn)
        except ApeException as e:
            raise SubmissionError(unit_name, str(e))
        return DeploymentHandle(unit_name=unit_name, txn_hash=receipt.txn_hash, receipt=receipt)

    def await_confirmation(self, handle: DeploymentHandle) -> ChecksumAddress:
        receipt: ReceiptAPI = handle.receipt
        try:
            receipt.required_confirmations = self.required_confirmations
            receipt.await_confirmations()
        except ApeException as e:
            raise ConfirmationError(handle.unit_name, str(e))

        if receipt.failed:
            raise ConfirmationError(
                handle.unit_name, f"Deployment transaction {handle.txn_hash} reverted"
            )
        if not receipt.contract_address:
            raise ConfirmationError(
                handle.unit_name, f"No contract address in receipt for {handle.txn_hash}"
            )
        return to_checksum_address(receipt.contract_address)
