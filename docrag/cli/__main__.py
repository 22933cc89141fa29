"""Allow ``python -m docrag.cli`` execution."""

import sys

from docrag.cli.main import main

sys.exit(main())
