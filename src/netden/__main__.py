"""Allow `python -m netden` to launch the CLI."""

from netden.main import main_sync

main_sync()
