import sys

from bucketowner.main import main


if __name__ == "__main__":
    sys.exit(main())
