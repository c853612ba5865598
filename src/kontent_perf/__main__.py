import sys

from kontent_perf.cli import main

sys.exit(main())
