"""Allow ``python -m tracker_deployer``."""

from tracker_deployer.cli.main import main

if __name__ == "__main__":
    main()
