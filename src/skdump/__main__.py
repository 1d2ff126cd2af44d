import sys

from skdump.cli import main

sys.exit(main())
