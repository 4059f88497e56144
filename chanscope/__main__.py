"""Main entry point when executing chanscope as a package.

This allows running the package using python -m chanscope.
"""

from chanscope.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
