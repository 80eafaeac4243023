from pathlib import Path

import click

from sequencer.constants import CONSTRUCTOR_PARAMS_DIR
from sequencer.types import AddressFilename, MinInt

params_filepath_option = click.option(
    "--params-filepath",
    "-p",
    help=f"Deployment params YAML (see {CONSTRUCTOR_PARAMS_DIR})",
    type=click.Path(dir_okay=False, exists=True, path_type=Path),
    required=True,
)

output_dir_option = click.option(
    "--output-dir",
    "-o",
    help="Directory the address map is written to; overrides the params file",
    type=click.Path(file_okay=False, path_type=Path),
    required=False,
)

output_filename_option = click.option(
    "--output-filename",
    help="Filename of the address map; overrides the params file",
    type=AddressFilename(),
    required=False,
)

autosign_option = click.option(
    "--autosign",
    help="Sign transactions and skip confirmation prompts",
    is_flag=True,
    default=False,
)

verify_option = click.option(
    "--verify/--no-verify",
    help="Publish confirmed contracts to the network's block explorer",
    default=False,
)

confirmations_option = click.option(
    "--confirmations",
    "-c",
    help="Confirmations to wait for per deployment; defaults to the network setting",
    type=MinInt(0),
    required=False,
)
