"""
Entry point for `python -m shopp_migrator`.
"""

import sys

from shopp_migrator.cli import main

sys.exit(main())
