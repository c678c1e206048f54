"""Run the supervisor with ``python -m autoseg_supervisor``."""

import sys

from autoseg_supervisor.presentation.cli import main

sys.exit(main())
