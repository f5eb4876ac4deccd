"""backup-vault: backup_vault/__main__.py.

Entry point for ``python -m backup_vault``.
"""

import sys

from .cli.dispatcher import main

if __name__ == "__main__":
    sys.exit(main())
