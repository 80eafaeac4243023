#!/usr/bin/python3

import click
from ape.cli import ConnectedProviderCommand, network_option

from sequencer.chain import ApeArtifactSource, ApeChainBackend
from sequencer.confirm import confirm_resolution
from sequencer.options import (
    autosign_option,
    confirmations_option,
    output_dir_option,
    output_filename_option,
    params_filepath_option,
    verify_option,
)
from sequencer.recorder import FileSink
from sequencer.sequencer import Sequencer
from sequencer.utils import _load_yaml, check_etherscan_plugin, validate_config, verify_contracts


@click.command(cls=ConnectedProviderCommand)
@network_option(required=True)
@params_filepath_option
@output_dir_option
@output_filename_option
@autosign_option
@verify_option
@confirmations_option
def cli(
    network, params_filepath, output_dir, output_filename, autosign, verify, confirmations
):
    """Deploy the contracts declared in a params file, in dependency order."""
    output_filepath = validate_config(
        config=_load_yaml(params_filepath), base_dir=params_filepath.parent
    )
    if verify:
        check_etherscan_plugin()

    backend = ApeChainBackend(autosign=autosign, required_confirmations=confirmations)
    sink = FileSink(output_dir or output_filepath.parent)
    sequencer = Sequencer.from_yaml(
        filepath=params_filepath,
        artifacts=ApeArtifactSource(),
        backend=backend,
        sink=sink,
        confirm=None if autosign else confirm_resolution,
    )
    if output_filename:
        sequencer.key = output_filename

    print(
        f"Account: {backend.get_account().address}",
        f"Config: {params_filepath}",
        f"Output: {sink.filepath(sequencer.key)}",
        f"Network: {network}",
        f"Verify: {verify}",
        sep="\n",
    )
    if not autosign:
        click.confirm("Continue?", abort=True)

    result = sequencer.run()
    print("\n" + "\n".join(result.summary()))

    if result.resolution_error is not None:
        raise click.ClickException(f"Resolution failed: {result.resolution_error}")
    if verify and result.address_map:
        verify_contracts(result.address_map)
    if result.failure is not None:
        raise click.ClickException(f"Deployment failed: {result.failure.error}")
    if not result.saved:
        raise click.ClickException(
            f"Deployment succeeded but the address map was not saved: {result.persist.error}"
        )


if __name__ == "__main__":
    cli()
