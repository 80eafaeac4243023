import typing
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional

from eth_typing import ChecksumAddress
from web3.auto import w3

from sequencer.chain import Artifact, ArtifactSource, ChainBackend, DeploymentHandle
from sequencer.constants import DeploymentStatus
from sequencer.errors import DeploymentError, DeploymentInterrupted, InvalidConstructorArguments
from sequencer.units import AddressMap, DeploymentUnit


class DeploymentRecord:
    """Outcome of attempting to deploy one unit."""

    class InvalidTransition(Exception):
        """Raised when a record is moved out of order or out of a terminal state"""

    def __init__(self, unit_name: str, attempted_at: Optional[datetime] = None):
        self.unit_name = unit_name
        self.status = DeploymentStatus.PENDING
        self.attempted_at = attempted_at or datetime.now(timezone.utc)
        self.address: Optional[ChecksumAddress] = None
        self.error: Optional[DeploymentError] = None
        self.handle: Optional[DeploymentHandle] = None

    def _transition(self, status: DeploymentStatus, *allowed: DeploymentStatus) -> None:
        if self.status not in allowed:
            raise self.InvalidTransition(
                f"{self.unit_name} cannot move from {self.status.value} to {status.value}"
            )
        self.status = status

    def submitted(self, handle: DeploymentHandle) -> None:
        self._transition(DeploymentStatus.SUBMITTED, DeploymentStatus.PENDING)
        self.handle = handle

    def confirmed(self, address: ChecksumAddress) -> None:
        self._transition(DeploymentStatus.CONFIRMED, DeploymentStatus.SUBMITTED)
        self.address = address

    def failed(self, error: DeploymentError) -> None:
        self._transition(
            DeploymentStatus.FAILED, DeploymentStatus.PENDING, DeploymentStatus.SUBMITTED
        )
        self.error = error

    def __repr__(self):
        detail = self.address or self.error or ""
        return f"DeploymentRecord({self.unit_name}, {self.status.value}, {detail})"


def report_record(record: DeploymentRecord) -> None:
    """Prints a line for each record transition."""
    if record.status == DeploymentStatus.PENDING:
        print(f"\nDeploying {record.unit_name}...")
    elif record.status == DeploymentStatus.SUBMITTED:
        print(f"(i) {record.unit_name} submitted in transaction {record.handle.txn_hash}")
    elif record.status == DeploymentStatus.CONFIRMED:
        print(f"{record.unit_name} deployed to: {record.address}")
    else:
        print(f"(!) {record.unit_name} failed: {record.error.message}")


def _validate_constructor_args(
    unit: DeploymentUnit, artifact: Artifact, resolved_params: OrderedDict
) -> None:
    """Validates the resolved constructor parameters against the artifact's constructor ABI."""
    abi_inputs = artifact.constructor_inputs
    if abi_inputs is None:
        return  # schema unknown

    if len(resolved_params) != len(abi_inputs):
        raise InvalidConstructorArguments(
            unit.name,
            f"Constructor parameters length mismatch - {artifact.name} ABI requires "
            f"{len(abi_inputs)}, Got {len(resolved_params)}.",
        )

    codex = enumerate(zip(abi_inputs, resolved_params.items()), start=0)
    for position, (abi_input, (name, value)) in codex:
        if abi_input["name"] and abi_input["name"] != name:
            raise InvalidConstructorArguments(
                unit.name,
                f"Constructor parameter '{name}' at position {position} does not "
                f"match the expected ABI name '{abi_input['name']}'.",
            )
        if not w3.is_encodable(abi_input["type"], value):
            raise InvalidConstructorArguments(
                unit.name,
                f"Constructor parameter '{name}' value {value!r} is not a valid "
                f"'{abi_input['type']}'.",
            )


class DeploymentExecutor:
    """
    Deploys units one at a time in the given order, feeding each confirmed address
    into the constructors of later units. The first failure aborts the rest of the run.
    """

    def __init__(
        self,
        artifacts: ArtifactSource,
        backend: ChainBackend,
        on_record: Optional[Callable[[DeploymentRecord], None]] = report_record,
        confirm: Optional[Callable[[str, typing.OrderedDict[str, Any]], None]] = None,
    ):
        self.artifacts = artifacts
        self.backend = backend
        self.on_record = on_record
        self.confirm = confirm
        self.records: List[DeploymentRecord] = list()
        self.addresses: AddressMap = OrderedDict()

    @property
    def failure(self) -> Optional[DeploymentRecord]:
        for record in self.records:
            if record.status == DeploymentStatus.FAILED:
                return record
        return None

    def _emit(self, record: DeploymentRecord) -> None:
        if self.on_record is not None:
            self.on_record(record)

    def _deploy(self, unit: DeploymentUnit, record: DeploymentRecord) -> ChecksumAddress:
        # InternalOrderingError is not a DeploymentError; it fails the record and propagates
        resolved_params = unit.resolve_constructor(self.addresses)

        artifact = self.artifacts.get_artifact(unit.contract)
        _validate_constructor_args(unit, artifact, resolved_params)
        if self.confirm is not None:
            self.confirm(unit.name, resolved_params)

        handle = self.backend.submit_deployment(
            artifact, list(resolved_params.values()), unit_name=unit.name
        )
        record.submitted(handle)
        self._emit(record)

        return self.backend.await_confirmation(handle)

    def execute(self, ordered_units: typing.Sequence[DeploymentUnit]) -> AddressMap:
        """Returns the confirmed addresses, in deployment order, of every unit reached."""
        for unit in ordered_units:
            record = DeploymentRecord(unit_name=unit.name)
            self.records.append(record)
            self._emit(record)

            try:
                address = self._deploy(unit, record)
            except DeploymentError as e:
                record.failed(e)
                self._emit(record)
                break
            except BaseException as e:
                # close the record so the partial map names this unit
                record.failed(DeploymentInterrupted(unit.name, f"{type(e).__name__}: {e}"))
                self._emit(record)
                raise

            record.confirmed(address)
            self.addresses[unit.name] = address
            self._emit(record)

        return self.addresses
