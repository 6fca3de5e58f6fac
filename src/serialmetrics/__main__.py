import sys

from serialmetrics.cli import main

sys.exit(main())
