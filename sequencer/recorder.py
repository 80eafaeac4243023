import json
import os
import tempfile
from abc import ABC, abstractmethod
from collections import OrderedDict
from pathlib import Path
from typing import Dict, List, NamedTuple, Optional

from sequencer.constants import (
    ADDRESS_MAP_JSON_FORMAT,
    DEFAULT_ADDRESS_FILENAME,
    ERROR_KEY,
    ERROR_MESSAGE_KEY,
    ERROR_UNIT_KEY,
    DeploymentStatus,
)
from sequencer.errors import PersistError, WriteError
from sequencer.executor import DeploymentRecord

# Sinks


class Sink(ABC):
    @abstractmethod
    def write(self, key: str, value: bytes) -> None:
        """Stores value under key, replacing any previous value atomically. Raises WriteError."""
        raise NotImplementedError

    @abstractmethod
    def read(self, key: str) -> bytes:
        raise NotImplementedError


class FileSink(Sink):
    """Stores each key as a file in a directory."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def filepath(self, key: str) -> Path:
        return self.directory / key

    def write(self, key: str, value: bytes) -> None:
        filepath = self.filepath(key)
        temp_filepath = None
        try:
            filepath.parent.mkdir(parents=True, exist_ok=True)
            # temp file in the same directory so the rename never crosses filesystems
            fd, temp_filepath = tempfile.mkstemp(
                prefix=f".{filepath.name}.", suffix=".tmp", dir=filepath.parent
            )
            with os.fdopen(fd, "wb") as file:
                file.write(value)
                file.flush()
                os.fsync(file.fileno())
            # mkstemp creates the file owner-only; the frontend needs to read it
            os.chmod(temp_filepath, 0o644)
            os.replace(temp_filepath, filepath)
        except OSError as e:
            if temp_filepath is not None and os.path.exists(temp_filepath):
                os.unlink(temp_filepath)
            raise WriteError(f"Could not write {filepath}: {e}") from e

    def read(self, key: str) -> bytes:
        return self.filepath(key).read_bytes()


class MemorySink(Sink):
    def __init__(self):
        self.data: Dict[str, bytes] = dict()

    def write(self, key: str, value: bytes) -> None:
        self.data[key] = bytes(value)

    def read(self, key: str) -> bytes:
        return self.data[key]


# Address map


class PersistResult(NamedTuple):
    key: str
    address_map: Dict[str, object]
    complete: bool
    error: Optional[PersistError] = None

    @property
    def saved(self) -> bool:
        return self.error is None


def build_address_map(
    records: List[DeploymentRecord], registry_names: Optional[Dict[str, str]] = None
) -> Dict[str, object]:
    """
    Maps the registry name of every confirmed unit to its address, in deployment order.
    If a unit failed, the map stops there and carries an error entry naming it.
    """
    registry_names = registry_names or dict()
    address_map = OrderedDict()
    for record in records:
        name = registry_names.get(record.unit_name, record.unit_name)
        if record.status == DeploymentStatus.CONFIRMED:
            address_map[name] = record.address
        elif record.status == DeploymentStatus.FAILED:
            address_map[ERROR_KEY] = {
                ERROR_UNIT_KEY: name,
                ERROR_MESSAGE_KEY: record.error.message,
            }
            break
    return address_map


def serialize_address_map(address_map: Dict[str, object]) -> bytes:
    return (json.dumps(address_map, **ADDRESS_MAP_JSON_FORMAT) + "\n").encode("utf-8")


def persist(
    records: List[DeploymentRecord],
    sink: Sink,
    key: str = DEFAULT_ADDRESS_FILENAME,
    registry_names: Optional[Dict[str, str]] = None,
) -> PersistResult:
    """
    Writes the address map for a finished run in a single write. A failed write is
    returned as a PersistError on the result so it never masks a deployment failure.
    """
    address_map = build_address_map(records, registry_names=registry_names)
    complete = ERROR_KEY not in address_map
    try:
        sink.write(key, serialize_address_map(address_map))
    except (WriteError, OSError) as e:
        error = PersistError(key=key, cause=e)
        print(f"(!) {error}")
        return PersistResult(key=key, address_map=address_map, complete=complete, error=error)

    kind = "Address map" if complete else "Partial address map"
    print(f"(i) {kind} written to {key}!")
    return PersistResult(key=key, address_map=address_map, complete=complete)


def read_address_map(sink: Sink, key: str = DEFAULT_ADDRESS_FILENAME) -> Dict[str, object]:
    return json.loads(sink.read(key), object_pairs_hook=OrderedDict)
