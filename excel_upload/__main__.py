import sys

from excel_upload.cli import main

sys.exit(main())
