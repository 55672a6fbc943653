"""Allow ``python -m src.cli`` execution (runs the extract command)."""

import sys

from src.cli.extract import main

sys.exit(main())
