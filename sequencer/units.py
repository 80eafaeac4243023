import typing
from abc import ABC, abstractmethod
from collections import OrderedDict
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

from sequencer.constants import (
    CONTRACT_CONSTRUCTOR_PARAMETER_KEY,
    CONTRACT_DEPENDS_ON_KEY,
    CONTRACT_REGISTRY_NAME_KEY,
    CONTRACT_TYPE_KEY,
    VARIABLE_PREFIX,
)
from sequencer.errors import DeploymentConfigError, InternalOrderingError

Address = str
AddressMap = typing.OrderedDict[str, Address]


class VariableContext:
    def __init__(
        self,
        contract_name: str,
        constants: typing.Dict[str, Any] = None,
    ):
        self.contract_name = contract_name
        self.constants = constants or dict()


# Variables


class Variable(ABC):
    @abstractmethod
    def resolve(self, addresses: AddressMap, unit_name: str) -> Any:
        raise NotImplementedError

    @classmethod
    def is_variable(cls, param: Any) -> bool:
        """Returns True if the param is a variable."""
        result = isinstance(param, str) and param.startswith(VARIABLE_PREFIX)
        return result


class Constant(Variable):
    def __init__(self, constant_name: str, context: VariableContext):
        try:
            self.constant_value = context.constants[constant_name]
        except KeyError:
            raise DeploymentConfigError(
                f"Constant '{constant_name}' used by {context.contract_name} "
                f"not found in deployment file."
            )

    @classmethod
    def is_constant(cls, value: str) -> bool:
        """Returns True if the variable is a deployment constant."""
        return value.isupper()

    def resolve(self, addresses: AddressMap, unit_name: str) -> Any:
        return self.constant_value


class AddressOf(Variable):
    """Placeholder for the confirmed address of another deployment unit."""

    def __init__(self, unit_name: str):
        self.unit_name = unit_name

    def resolve(self, addresses: AddressMap, unit_name: str) -> Address:
        try:
            return addresses[self.unit_name]
        except KeyError:
            raise InternalOrderingError(unit_name=unit_name, placeholder=self.unit_name)

    def __eq__(self, other):
        return isinstance(other, AddressOf) and other.unit_name == self.unit_name

    def __hash__(self):
        return hash((AddressOf, self.unit_name))

    def __repr__(self):
        return f"{VARIABLE_PREFIX}{self.unit_name}"


def _variable_from_value(variable: str, context: VariableContext) -> Variable:
    variable = variable[len(VARIABLE_PREFIX) :]
    if not variable:
        raise DeploymentConfigError(f"Empty variable in {context.contract_name} parameters.")
    if Constant.is_constant(variable):
        return Constant(variable, context)
    return AddressOf(variable)


def _process_raw_value(value: Any, variable_context: VariableContext) -> Any:
    if isinstance(value, list):
        return [_process_raw_value(v, variable_context) for v in value]

    if Variable.is_variable(value):
        value = _variable_from_value(value, variable_context)
        if isinstance(value, Constant):
            # constants are static; inline them so only placeholders remain
            value = value.constant_value

    return value


def _process_raw_values(values: Dict, variable_context: VariableContext) -> OrderedDict:
    processed_parameters = OrderedDict()
    for name, value in values.items():
        processed_parameters[name] = _process_raw_value(value, variable_context)

    return processed_parameters


def _placeholders(value: Any) -> List[AddressOf]:
    if isinstance(value, list):
        return [p for v in value for p in _placeholders(v)]
    if isinstance(value, AddressOf):
        return [value]
    return []


def resolve_param(value: Any, addresses: AddressMap, unit_name: str) -> Any:
    """Resolves a single parameter value or a list of parameter values."""
    if isinstance(value, list):
        return [resolve_param(v, addresses, unit_name) for v in value]

    if isinstance(value, Variable):
        return value.resolve(addresses, unit_name)

    return value  # literally a value


def _lower_camel(name: str) -> str:
    return name[:1].lower() + name[1:]


class DeploymentUnit(NamedTuple):
    """A named request to deploy one contract."""

    name: str
    dependencies: Tuple[str, ...]
    constructor_template: OrderedDict
    contract: str
    registry_name: str

    @classmethod
    def create(
        cls,
        name: str,
        constructor: Optional[Dict[str, Any]] = None,
        depends_on: typing.Iterable[str] = (),
        contract: Optional[str] = None,
        registry_name: Optional[str] = None,
    ) -> "DeploymentUnit":
        """
        Builds a unit whose dependencies are the explicitly declared ones
        plus every unit referenced by a placeholder in the constructor.
        """
        if not name or not isinstance(name, str):
            raise DeploymentConfigError(f"Invalid deployment unit name: {name!r}")

        template = OrderedDict(constructor or dict())
        dependencies = list()
        referenced = list(depends_on) + [
            p.unit_name for value in template.values() for p in _placeholders(value)
        ]
        for dependency in referenced:
            if dependency not in dependencies:
                dependencies.append(dependency)

        return cls(
            name=name,
            dependencies=tuple(dependencies),
            constructor_template=template,
            contract=contract or name,
            registry_name=registry_name or _lower_camel(name),
        )

    def resolve_constructor(self, addresses: AddressMap) -> OrderedDict:
        """Substitutes already-deployed addresses into the constructor template."""
        resolved_parameters = OrderedDict()
        for name, value in self.constructor_template.items():
            resolved_parameters[name] = resolve_param(value, addresses, self.name)
        return resolved_parameters


def _unit_from_config(contract_info: Any, constants: Dict[str, Any]) -> DeploymentUnit:
    if isinstance(contract_info, str):
        return DeploymentUnit.create(name=contract_info)

    if not isinstance(contract_info, dict) or len(contract_info) != 1:
        raise DeploymentConfigError("Malformed constructor parameters YAML.")

    unit_name = list(contract_info.keys())[0]  # only one entry
    unit_data = contract_info[unit_name] or dict()
    if not isinstance(unit_data, dict):
        raise DeploymentConfigError(f"Malformed {unit_name} entry in constructor parameters YAML.")

    context = VariableContext(contract_name=unit_name, constants=constants)
    parameters = _process_raw_values(
        unit_data.get(CONTRACT_CONSTRUCTOR_PARAMETER_KEY) or dict(), context
    )

    depends_on = unit_data.get(CONTRACT_DEPENDS_ON_KEY) or list()
    if isinstance(depends_on, str):
        depends_on = [depends_on]

    return DeploymentUnit.create(
        name=unit_name,
        constructor=parameters,
        depends_on=depends_on,
        contract=unit_data.get(CONTRACT_TYPE_KEY),
        registry_name=unit_data.get(CONTRACT_REGISTRY_NAME_KEY),
    )


def load_units(config: typing.Dict) -> List[DeploymentUnit]:
    """Loads the declared deployment units, in file order, from a parsed deployment config."""
    print("Processing contract constructor parameters...")
    contracts = config.get("contracts")
    if not contracts:
        raise DeploymentConfigError("Constructor parameters file missing 'contracts' field.")

    constants = config.get("constants") or dict()
    return [_unit_from_config(contract_info, constants) for contract_info in contracts]
