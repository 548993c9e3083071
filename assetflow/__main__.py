"""Allow ``python -m assetflow``."""

import sys

from assetflow.pipeline import main

sys.exit(main())
