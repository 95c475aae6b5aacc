import sys

from mhg_importer.cli import main

sys.exit(main())
