"""Main entry point when executing contentcli as a package.

This allows running the package using python -m contentcli.
"""

from contentcli.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
