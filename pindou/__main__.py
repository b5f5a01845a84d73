import sys

from pindou.cli import main

sys.exit(main())
