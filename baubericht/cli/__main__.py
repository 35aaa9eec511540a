from __future__ import annotations

import sys

from . import report_cli


def main() -> int:
    return report_cli.main()


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
