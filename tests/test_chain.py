from unittest.mock import MagicMock, patch

import pytest
from ape.exceptions import ApeException

from sequencer.chain import ApeArtifactSource, ApeChainBackend, Artifact, DeploymentHandle
from sequencer.errors import ArtifactNotFoundError, ConfirmationError, SubmissionError

CONTRACT_ADDRESS = "0x5fbdb2315678afecb367f032d93f642f64180aa3"


def abi_input(name, type_):
    entry = MagicMock()
    entry.name = name
    entry.canonical_type = type_
    return entry


@pytest.fixture
def container():
    container = MagicMock()
    container.contract_type.constructor.inputs = [abi_input("_eduChain", "address")]
    constructor_entry = MagicMock()
    constructor_entry.model_dump.return_value = {"type": "constructor", "inputs": []}
    container.contract_type.abi = [constructor_entry]
    container.contract_type.deployment_bytecode.bytecode = "0x6080"
    return container


@pytest.fixture
def account():
    account = MagicMock()
    account.address = "0x0000000000000000000000000000000000000001"
    return account


@pytest.fixture
def ape_backend(account):
    return ApeChainBackend(account=account, autosign=True, required_confirmations=2)


def test_artifact_from_project(container):
    with patch("sequencer.chain.get_contract_container", return_value=container):
        artifact = ApeArtifactSource().get_artifact("BugBounty")

    assert artifact.name == "BugBounty"
    assert artifact.bytecode == "0x6080"
    assert artifact.abi == [{"type": "constructor", "inputs": []}]
    assert artifact.constructor_inputs == [{"name": "_eduChain", "type": "address"}]
    assert artifact.container is container


def test_artifact_without_constructor(container):
    container.contract_type.constructor = None
    with patch("sequencer.chain.get_contract_container", return_value=container):
        artifact = ApeArtifactSource().get_artifact("EduChain")
    assert artifact.constructor_inputs == []


def test_artifact_not_found():
    missing = ValueError("No contract found with name 'Nope'.")
    with patch("sequencer.chain.get_contract_container", side_effect=missing):
        with pytest.raises(ArtifactNotFoundError, match="Nope"):
            ApeArtifactSource().get_artifact("Nope")


def test_autosign(account, capsys):
    ApeChainBackend(account=account, autosign=True)
    account.set_autosign.assert_called_once_with(True)
    assert "Autosign is enabled" in capsys.readouterr().out


def test_submit_deployment(ape_backend, account, container):
    receipt = MagicMock(txn_hash="0xabc")
    account.call.return_value = receipt
    artifact = Artifact(name="BugBounty", abi=[], container=container)

    handle = ape_backend.submit_deployment(artifact, ["0xAAA"], unit_name="BugBounty")

    container.constructor.serialize_transaction.assert_called_once_with(
        "0xAAA", required_confirmations=0
    )
    account.call.assert_called_once_with(container.constructor.serialize_transaction.return_value)
    assert handle == DeploymentHandle(unit_name="BugBounty", txn_hash="0xabc", receipt=receipt)


def test_submit_deployment_error(ape_backend, account, container):
    account.call.side_effect = ApeException("insufficient funds for gas")
    artifact = Artifact(name="BugBounty", abi=[], container=container)
    with pytest.raises(SubmissionError, match="insufficient funds"):
        ape_backend.submit_deployment(artifact, [], unit_name="BugBounty")


def test_submit_without_container(ape_backend):
    with pytest.raises(SubmissionError):
        ape_backend.submit_deployment(Artifact(name="X", abi=[]), [], unit_name="X")


def test_await_confirmation(ape_backend):
    receipt = MagicMock(failed=False, contract_address=CONTRACT_ADDRESS)
    address = ape_backend.await_confirmation(DeploymentHandle("EduChain", "0xabc", receipt))

    assert receipt.required_confirmations == 2
    receipt.await_confirmations.assert_called_once_with()
    assert address == "0x5FbDB2315678afecb367f032d93F642f64180aa3"


def test_await_confirmation_reverted(ape_backend):
    receipt = MagicMock(failed=True, contract_address=None)
    with pytest.raises(ConfirmationError, match="reverted"):
        ape_backend.await_confirmation(DeploymentHandle("EduChain", "0xabc", receipt))


def test_await_confirmation_without_address(ape_backend):
    receipt = MagicMock(failed=False, contract_address=None)
    with pytest.raises(ConfirmationError, match="No contract address"):
        ape_backend.await_confirmation(DeploymentHandle("EduChain", "0xabc", receipt))


def test_await_confirmation_error(ape_backend):
    receipt = MagicMock()
    receipt.await_confirmations.side_effect = ApeException("provider disconnected")
    with pytest.raises(ConfirmationError, match="provider disconnected"):
        ape_backend.await_confirmation(DeploymentHandle("EduChain", "0xabc", receipt))
