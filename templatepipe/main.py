# templatepipe/main.py
"""Main entry point for the templatepipe CLI application."""

from templatepipe.cli.interface import main_cli


def entrypoint():
    """Function to be called by the script defined in pyproject.toml."""
    main_cli(prog_name="templatepipe")

if __name__ == '__main__':
    entrypoint()
