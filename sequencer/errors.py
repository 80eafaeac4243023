from typing import List


class SequencerError(Exception):
    """Base class for all deployment sequencing errors."""


class DeploymentConfigError(SequencerError, ValueError):
    """Raised when the declared deployment units are malformed."""


#
# Resolution
#


class ResolutionError(SequencerError):
    """Raised before any deployment is attempted; the whole run is safe to retry."""


class CycleError(ResolutionError):
    def __init__(self, cycle_members: List[str]):
        self.cycle_members = list(cycle_members)
        super().__init__(f"Dependency cycle detected between {', '.join(self.cycle_members)}")


class UnknownDependencyError(ResolutionError):
    def __init__(self, unit_name: str, missing_dependency: str):
        self.unit_name = unit_name
        self.missing_dependency = missing_dependency
        super().__init__(
            f"{unit_name} depends on '{missing_dependency}' which is not a declared unit"
        )


#
# Deployment
#


class DeploymentError(SequencerError):
    """A single unit failed to deploy; the remaining sequence is aborted."""

    def __init__(self, unit_name: str, message: str):
        self.unit_name = unit_name
        self.message = message
        super().__init__(f"{unit_name}: {message}")


class ArtifactNotFoundError(DeploymentError):
    pass


class InvalidConstructorArguments(DeploymentError):
    pass


class SubmissionError(DeploymentError):
    pass


class OperatorAbort(SubmissionError):
    """The operator declined the deployment at the confirmation prompt."""


class ConfirmationError(DeploymentError):
    pass


class DeploymentInterrupted(DeploymentError):
    """An unexpected error or interrupt stopped the run while this unit was in flight."""


class InternalOrderingError(SequencerError):
    """
    A placeholder referenced a unit that has not been deployed yet.
    This is a resolver/executor bug, never an environmental fault.
    """

    def __init__(self, unit_name: str, placeholder: str):
        self.unit_name = unit_name
        self.placeholder = placeholder
        super().__init__(
            f"{unit_name} references '{placeholder}' before it was deployed; "
            f"deployment order is inconsistent with its dependencies"
        )


#
# Persistence
#


class WriteError(SequencerError):
    """Raised by a sink when a value could not be stored."""


class PersistError(SequencerError):
    """The deployments stand, but the address map was not saved."""

    def __init__(self, key: str, cause: Exception):
        self.key = key
        self.cause = cause
        super().__init__(f"Failed to persist address map to '{key}': {cause}")
