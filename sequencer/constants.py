from enum import Enum
from pathlib import Path

import sequencer

#
# Filesystem
#

SEQUENCER_DIR = Path(sequencer.__file__).parent
CONSTRUCTOR_PARAMS_DIR = SEQUENCER_DIR / "constructor_params"
ARTIFACTS_DIR = SEQUENCER_DIR / "artifacts"

DEFAULT_ADDRESS_FILENAME = "addresses.json"

#
# Config
#

VARIABLE_PREFIX = "$"
CONTRACT_CONSTRUCTOR_PARAMETER_KEY = "constructor"
CONTRACT_DEPENDS_ON_KEY = "depends_on"
CONTRACT_TYPE_KEY = "contract"
CONTRACT_REGISTRY_NAME_KEY = "registry_name"

#
# Persisted address map
#

# Field names are consumed by the frontend; do not rename without a migration note.
ERROR_KEY = "_error"
ERROR_UNIT_KEY = "unit"
ERROR_MESSAGE_KEY = "message"

ADDRESS_MAP_JSON_FORMAT = {"indent": 2}

#
# Deployment record states
#


class DeploymentStatus(Enum):
    PENDING = "pending"
    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (DeploymentStatus.CONFIRMED, DeploymentStatus.FAILED)
