"""Allow ``python -m cppcheck_boa``."""

from cppcheck_boa.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
