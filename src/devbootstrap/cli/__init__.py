"""
devbootstrap CLI - Bootstrap a local developer environment.

Commands:
    devbootstrap install    Install dependencies and bring up services
    devbootstrap check      Print the prerequisite snapshot
    devbootstrap status     Show backing service containers and health
"""

import click

from .install import install
from .status import check, status


@click.group()
@click.version_option(package_name="devbootstrap")
def main():
    """devbootstrap - Local developer environment bootstrapper."""
    pass


main.add_command(install)
main.add_command(check)
main.add_command(status)


if __name__ == "__main__":
    main()
