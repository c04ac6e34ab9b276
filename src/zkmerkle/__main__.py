"""Allow `python -m zkmerkle`."""

import sys

from zkmerkle.cli import main

sys.exit(main())
