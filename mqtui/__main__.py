"""Module entrypoint for ``python -m mqtui``.

Argument parsing and runtime setup happen in ``mqtui.cli``.
"""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
