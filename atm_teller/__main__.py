"""Run the teller CLI with `python -m atm_teller`"""

import sys

from .cli import main


if __name__ == "__main__":
    sys.exit(main())
