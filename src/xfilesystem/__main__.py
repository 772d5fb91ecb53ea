import sys

from xfilesystem.cli import main

sys.exit(main())
