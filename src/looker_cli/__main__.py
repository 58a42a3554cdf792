import sys

from looker_cli.cli import main

sys.exit(main())
