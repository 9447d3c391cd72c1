"""Allow ``python -m garment_capture`` to launch the capture station."""

from __future__ import annotations

import sys


def main() -> None:
    from garment_capture import run

    try:
        code = run(sys.argv[1:])
    except KeyboardInterrupt:
        code = 130
    sys.exit(code)


if __name__ == "__main__":
    main()
