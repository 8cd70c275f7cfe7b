"""Allow running as python -m silverflow."""

import sys

from silverflow.cli.main import main

sys.exit(main())
