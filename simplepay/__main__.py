import sys

from simplepay.cli import main


sys.exit(main())
