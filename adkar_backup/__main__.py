import sys

from adkar_backup.cli import main

sys.exit(main())
