import typing
from pathlib import Path
from typing import Any, Callable, Dict, List, NamedTuple, Optional

from sequencer.chain import ArtifactSource, ChainBackend
from sequencer.constants import DEFAULT_ADDRESS_FILENAME
from sequencer.errors import DeploymentConfigError, ResolutionError, SequencerError
from sequencer.executor import DeploymentExecutor, DeploymentRecord, report_record
from sequencer.recorder import FileSink, PersistResult, Sink, persist
from sequencer.resolver import resolve
from sequencer.units import AddressMap, DeploymentUnit, load_units
from sequencer.utils import _load_yaml, get_artifact_filepath


class RunResult(NamedTuple):
    """Outcome of a whole run: full success, partial deployment, or a resolution failure."""

    order: List[DeploymentUnit]
    address_map: AddressMap
    records: List[DeploymentRecord]
    failure: Optional[DeploymentRecord] = None
    resolution_error: Optional[SequencerError] = None
    persist: Optional[PersistResult] = None

    @property
    def succeeded(self) -> bool:
        return self.resolution_error is None and self.failure is None

    @property
    def saved(self) -> bool:
        return self.persist is not None and self.persist.saved

    def summary(self) -> List[str]:
        if self.resolution_error is not None:
            return [f"Deployment not attempted: {self.resolution_error}"]

        lines = list()
        if self.failure is None:
            lines.append(f"Deployed {len(self.address_map)} contract(s):")
        else:
            failure = self.failure
            lines.append(f"Deployment of {failure.unit_name} failed: {failure.error.message}")
            lines.append(f"Deployed before the failure ({len(self.address_map)}):")
        for name, address in self.address_map.items():
            lines.append(f"\t{name}: {address}")
        if self.persist is not None and not self.persist.saved:
            lines.append(f"Address map was NOT saved: {self.persist.error}")
        return lines


class Sequencer:
    """
    Resolves the deployment order of a set of units, deploys them one by one and
    persists the resulting address map.
    """

    def __init__(
        self,
        units: typing.Sequence[DeploymentUnit],
        artifacts: ArtifactSource,
        backend: ChainBackend,
        sink: Sink,
        key: str = DEFAULT_ADDRESS_FILENAME,
        confirm: Optional[Callable[[str, typing.OrderedDict[str, Any]], None]] = None,
        on_record: Optional[Callable[[DeploymentRecord], None]] = report_record,
    ):
        self.units = list(units)
        self.artifacts = artifacts
        self.backend = backend
        self.sink = sink
        self.key = key
        self.confirm = confirm
        self.on_record = on_record

    @classmethod
    def from_yaml(
        cls,
        filepath: Path,
        artifacts: ArtifactSource,
        backend: ChainBackend,
        sink: Optional[Sink] = None,
        **kwargs,
    ) -> "Sequencer":
        filepath = Path(filepath)
        config = _load_yaml(filepath)
        units = load_units(config)
        output_filepath = get_artifact_filepath(config, base_dir=filepath.parent)
        if sink is None:
            sink = FileSink(output_filepath.parent)
        return cls(
            units=units,
            artifacts=artifacts,
            backend=backend,
            sink=sink,
            key=output_filepath.name,
            **kwargs,
        )

    @property
    def registry_names(self) -> Dict[str, str]:
        return {unit.name: unit.registry_name for unit in self.units}

    def run(self) -> RunResult:
        try:
            order = resolve(self.units)
        except (ResolutionError, DeploymentConfigError) as e:
            print(f"(!) {e}")
            return RunResult(order=list(), address_map=dict(), records=list(), resolution_error=e)

        print(f"Deployment order: {' -> '.join(unit.name for unit in order)}")
        executor = DeploymentExecutor(
            artifacts=self.artifacts,
            backend=self.backend,
            on_record=self.on_record,
            confirm=self.confirm,
        )
        try:
            address_map = executor.execute(order)
        finally:
            # also runs when an unexpected error or interrupt escapes the executor
            persist_result = persist(
                records=executor.records,
                sink=self.sink,
                key=self.key,
                registry_names=self.registry_names,
            )
        return RunResult(
            order=order,
            address_map=address_map,
            records=executor.records,
            failure=executor.failure,
            persist=persist_result,
        )
