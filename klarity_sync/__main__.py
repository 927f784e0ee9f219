"""Package entry point for ``python -m klarity_sync``.

Delegates to the CLI's main() and exits with its return code.
"""

import sys

from klarity_sync.cli import main

if __name__ == "__main__":
    sys.exit(main())
