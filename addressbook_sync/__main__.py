"""Run one session start from the environment configuration."""

import json

from .handlers.session_handler import run_session


def main() -> None:
    print(json.dumps(run_session(), indent=2))


if __name__ == "__main__":
    main()
