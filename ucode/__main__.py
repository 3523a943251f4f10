import sys

from ucode.ucode_cli import main

sys.exit(main())
