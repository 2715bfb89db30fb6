"""Allow `python -m devbootstrap`."""

from devbootstrap.cli import main

main()
