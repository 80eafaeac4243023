from collections import OrderedDict

import pytest

from sequencer.chain import Artifact, ArtifactSource, ChainBackend, DeploymentHandle
from sequencer.errors import ArtifactNotFoundError, ConfirmationError, SubmissionError
from sequencer.recorder import MemorySink
from sequencer.units import AddressOf, DeploymentUnit

EDUCHAIN_ADDRESS = "0xAAA"
BUGBOUNTY_ADDRESS = "0xBBB"


class FakeArtifactSource(ArtifactSource):
    def __init__(self, known=None, constructor_inputs=None):
        self.known = known
        self.constructor_inputs = constructor_inputs or dict()
        self.requested = list()

    def get_artifact(self, name: str) -> Artifact:
        self.requested.append(name)
        if self.known is not None and name not in self.known:
            raise ArtifactNotFoundError(name, f"No contract found with name '{name}'.")
        return Artifact(
            name=name,
            abi=list(),
            bytecode="0x6080",
            constructor_inputs=self.constructor_inputs.get(name),
        )


class FakeChainBackend(ChainBackend):
    """Deploys instantly; addresses and failures are keyed by contract name."""

    def __init__(self, addresses=None, fail_submission=(), fail_confirmation=()):
        self.addresses = addresses or dict()
        self.fail_submission = set(fail_submission)
        self.fail_confirmation = set(fail_confirmation)
        self.submitted = OrderedDict()
        self.events = list()

    def submit_deployment(self, artifact, args, unit_name):
        self.events.append(("submit", unit_name))
        if artifact.name in self.fail_submission:
            raise SubmissionError(unit_name, "insufficient funds for gas")
        self.submitted[unit_name] = list(args)
        txn_hash = f"0x{len(self.submitted):064x}"
        return DeploymentHandle(unit_name=unit_name, txn_hash=txn_hash, receipt=artifact.name)

    def await_confirmation(self, handle):
        self.events.append(("confirm", handle.unit_name))
        if handle.receipt in self.fail_confirmation:
            raise ConfirmationError(handle.unit_name, "transaction reverted")
        return self.addresses.get(handle.receipt, f"0x{handle.unit_name}")


@pytest.fixture
def edu_units():
    return [
        DeploymentUnit.create("EduChain"),
        DeploymentUnit.create("BugBounty", constructor={"_eduChain": AddressOf("EduChain")}),
    ]


@pytest.fixture
def artifacts():
    return FakeArtifactSource()


@pytest.fixture
def backend():
    return FakeChainBackend(
        addresses={"EduChain": EDUCHAIN_ADDRESS, "BugBounty": BUGBOUNTY_ADDRESS}
    )


@pytest.fixture
def sink():
    return MemorySink()
