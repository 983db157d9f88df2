# =============================================================================
# readmail Entry Point for `python -m readmail`
# =============================================================================
# Equivalent to running the 'readmail' command after installation.
# =============================================================================

import sys

from readmail.app import main

if __name__ == "__main__":
    sys.exit(main())
