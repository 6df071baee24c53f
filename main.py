
"""
Compatibility entrypoint.

Prefer running:
  - `verses watch`
or:
  - `python -m verses`
"""

from verses.cli import main as cli_main


def cli() -> None:
    cli_main()


if __name__ == "__main__":
    cli()
