from __future__ import annotations

import sys

from interface.bootstrap import configure

configure()

from interface.api import app  # noqa: E402,F401
from interface.cli import main as cli_main  # noqa: E402

if __name__ == "__main__":
    sys.exit(cli_main())
