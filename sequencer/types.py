import click

from sequencer.constants import DEFAULT_ADDRESS_FILENAME


class AddressFilename(click.ParamType):
    """Name of the JSON file the address map is written to; a bare name, never a path."""

    name = "address_filename"

    def convert(self, value, param, ctx):
        if not value or "/" in value or "\\" in value:
            self.fail(f"{value!r} is not a plain filename", param, ctx)
        if not value.endswith(".json"):
            self.fail(f"{value} must be a .json file (e.g. {DEFAULT_ADDRESS_FILENAME})", param, ctx)
        return value


class MinInt(click.ParamType):
    name = "minint"

    def __init__(self, min_value):
        self.min_value = min_value

    def convert(self, value, param, ctx):
        try:
            ivalue = int(value)
        except ValueError:
            self.fail(f"{value} is not a valid integer", param, ctx)
        if ivalue < self.min_value:
            self.fail(
                f"{value} is less than the minimum allowed value of {self.min_value}", param, ctx
            )
        return ivalue
