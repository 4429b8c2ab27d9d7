"""Allow ``python -m macsetup``."""

from macsetup.main import cli

if __name__ == "__main__":
    cli()
