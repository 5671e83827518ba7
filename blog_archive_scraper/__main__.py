import sys

from blog_archive_scraper.cli import main

sys.exit(main())
