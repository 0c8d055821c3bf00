"""Run the command line interface with python -m bridgeattend."""

from bridgeattend import cli

cli.app(prog_name="bridgeattend")
