import sys

from fastsim_mc.cli import main

sys.exit(main())
