import sys

from connload.cli import main

sys.exit(main())
